"""
PartLink - typed associations between inventory parts
Run the HTTP + MCP server with uvicorn
"""

import os

import uvicorn


def main() -> None:
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", "8080"))
    uvicorn.run("app.main:asgi_app", host=host, port=port)


if __name__ == "__main__":
    main()
