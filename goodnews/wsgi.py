"""
Entrypoint for serving Good News.

  gunicorn -w 2 -b 0.0.0.0:3000 goodnews.wsgi:app

Settings such as DATABASE_URL and FLASK_SECRET_KEY are read from the
environment, with a local `.env` file loaded first.
"""

import os

from dotenv import load_dotenv

from . import create_app

load_dotenv()

app = create_app()


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", "3000")))
