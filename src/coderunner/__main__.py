import uvicorn

from .settings import load_settings


def main():
    s = load_settings()
    uvicorn.run("coderunner.api.app:create_app", factory=True, host=s.host, port=s.port, log_level=s.log_level.lower())


if __name__ == "__main__":
    main()
