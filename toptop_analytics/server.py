from flask import Flask

from toptop_analytics.config import FLASK_HOST, FLASK_PORT, FLASK_DEBUG, LOG_LEVEL
from toptop_analytics.event_log import build_store
from toptop_analytics.logging_setup import setup_logging
from toptop_analytics.routes import register_routes


def create_app(store=None):
    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions["event_log"] = store if store is not None else build_store()
    register_routes(app)
    return app


def main():
    setup_logging(LOG_LEVEL)
    app = create_app()
    app.run(host=FLASK_HOST, port=FLASK_PORT, debug=FLASK_DEBUG)


if __name__ == "__main__":
    main()
