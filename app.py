"""Entry point: ``flask --app app run`` or ``flask --app app sweep-passes``."""

from hall_pass.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=bool(app.config.get("DEBUG", False)))
