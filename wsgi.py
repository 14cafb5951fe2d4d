"""WSGI entrypoint for production servers (e.g. Gunicorn).

Example:
  gunicorn -w 1 -b 0.0.0.0:3000 wsgi:app

Keep a single worker: the JSON files are only locked within one process.
"""

from dotenv import load_dotenv

load_dotenv()

from farm_records import create_app  # noqa: E402

app = create_app()
