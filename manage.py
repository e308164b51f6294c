"""Management entry point: `python manage.py init-db`, `python manage.py db upgrade`, ..."""

from dotenv import load_dotenv
from flask.cli import FlaskGroup

from onramp import create_app

load_dotenv()

cli = FlaskGroup(create_app=create_app)


if __name__ == "__main__":
    cli()
