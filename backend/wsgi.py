"""
WSGI entry point.

    gunicorn --chdir backend wsgi:app
    python backend/wsgi.py            # Flask dev server on :5000
"""

import os

from sitecheck import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), threaded=True)
