import os

from recordcrate.app import create_app

app = create_app()

if __name__ == "__main__":
    app.run(
        host="0.0.0.0",  # noqa: S104
        port=int(os.environ.get("FLASK_SERVER_PORT", 5000)),
        debug=True,
    )
