from typing import Any, Mapping

from flask import Flask
from flask_sqlalchemy import SQLAlchemy


db = SQLAlchemy()


def create_app(
    database_uri: str | None = None, config: Mapping[str, Any] | None = None
):
    app = Flask(__name__)
    app.config["SQLALCHEMY_DATABASE_URI"] = database_uri or "sqlite:///playlog.db"
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["PLAYLOG_THRESHOLDS"] = {}
    app.config["PLAYLOG_DROUGHT_DAYS"] = 3
    if config:
        app.config.update(config)

    db.init_app(app)

    from .routes import bp as core_bp

    app.register_blueprint(core_bp)

    with app.app_context():
        db.create_all()

    return app
