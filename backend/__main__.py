"""Run the backend with uvicorn on $PORT (default 8080)."""

import uvicorn

from backend.main import app


def main() -> None:
    port = app.state.settings.port
    uvicorn.run(app, host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
