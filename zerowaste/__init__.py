# zerowaste/__init__.py
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_mail import Mail
from config import Config

# Initialize extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
mail = Mail()


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)
    mail.init_app(app)

    # Flask-Login settings: the API answers 401 instead of redirecting
    login_manager.session_protection = "basic"

    # Import and register blueprint
    from zerowaste.routes import main
    app.register_blueprint(main)

    # Create database tables
    with app.app_context():
        from zerowaste import models  # noqa: F401
        db.create_all()

    app.logger.info("ZeroWaste Rescue API ready (database: %s)", app.config["SQLALCHEMY_DATABASE_URI"])
    return app
