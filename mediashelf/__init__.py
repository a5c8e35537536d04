import os

from flask import Flask, current_app, has_request_context, jsonify, request
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_babel import Babel
from sqlalchemy import event

from config import Config

db = SQLAlchemy()
login_manager = LoginManager()
babel = Babel()


def create_app(config_class=Config):
    app = Flask(__name__)
    settings = config_class() if isinstance(config_class, type) else config_class
    app.config.update(settings.model_dump())

    db.init_app(app)
    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        with app.app_context():
            enable_sqlite_savepoints(db.engine)
    login_manager.init_app(app)

    def get_locale():
        if not has_request_context():
            return app.config["BABEL_DEFAULT_LOCALE"]

        # 1. Explicit language cookie set by the web client
        lang = request.cookies.get("language")
        if lang and lang in app.config["LANGUAGES"]:
            current_app.logger.debug(
                f"Locale selector: found language in cookie: {lang}")
            return lang

        # 2. Fallback to browser's preferred language
        return request.accept_languages.best_match(app.config["LANGUAGES"])

    babel.init_app(app, locale_selector=get_locale)

    os.makedirs(app.config["UPLOAD_FOLDER"], exist_ok=True)

    from mediashelf.services.registry import init_services
    init_services(app)

    from mediashelf.routes import register_blueprints
    register_blueprints(app)

    from mediashelf.cli import register_commands
    register_commands(app)

    from mediashelf import models

    return app


def enable_sqlite_savepoints(engine):
    """Let SQLAlchemy issue BEGIN itself so SAVEPOINT and ROLLBACK work on pysqlite.

    Without this the driver commits on its own around SAVEPOINT statements and a
    rolled-back import row can leave rows behind.
    """
    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


@login_manager.user_loader
def load_user(user_id):
    from mediashelf.models import User
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    from mediashelf.utils.messages import ERROR_UNAUTHORIZED
    return jsonify({"error": str(ERROR_UNAUTHORIZED)}), 401
