import os
import logging
from dotenv import load_dotenv
load_dotenv()
from flask import Flask, jsonify
from flask_cors import CORS
from flask_migrate import Migrate
from flask_session import Session
from werkzeug.exceptions import HTTPException
from config import config_dict, ProdConfig
from models import db
from classes.errors import QuizError
from routes.authentication import auth_bp
from routes.teachers import teacher_bp
from routes.play import play_bp
from manage import register_commands

migrate = Migrate()


def register_error_handlers(app):
    @app.errorhandler(QuizError)
    def handle_quiz_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error):
        db.session.rollback()
        app.logger.exception("Unhandled error: %s", error)
        return jsonify({"error": "An unexpected error occurred"}), 500


def create_app(config_name=None):
    app = Flask(__name__)

    env = config_name or os.environ.get("FLASK_ENV", "production")
    app.config.from_object(config_dict.get(env, ProdConfig))

    logging.basicConfig(level=app.config["LOG_LEVEL"])
    app.logger.setLevel(app.config["LOG_LEVEL"])
    app.logger.info("Environment: %s", env)

    CORS(app, resources={r"/api/*": {"origins": app.config["FRONTEND_ORIGINS"]}}, supports_credentials=True)
    Session(app)

    db.init_app(app)
    migrate.init_app(app, db)

    @app.route('/')
    def home():
        return "Welcome to ClassQuiz!"

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(teacher_bp, url_prefix='/api/teacher')
    app.register_blueprint(play_bp, url_prefix='/api/play')

    register_error_handlers(app)
    register_commands(app)

    return app


app = create_app()

if __name__ == '__main__':
    app.run(debug=app.config.get('DEBUG', False))
