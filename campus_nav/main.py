"""WSGI entry point: ``gunicorn campus_nav.main:app`` or ``flask --app campus_nav.main navigate``."""
from campus_nav import _get_env, _get_env_int, create_app

app = create_app()


def run() -> None:
    """Serve the API with Flask's development server."""
    app.run(
        host=_get_env("HOST", "127.0.0.1"),
        port=_get_env_int("PORT", 8000),
        debug=app.config["FLASK_ENV"] == "development",
    )


if __name__ == "__main__":
    run()
