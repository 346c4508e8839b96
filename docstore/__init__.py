from flask import Flask
from .config import Config
from .extensions import cors, init_collections


def create_app(config_class: type[Config] = Config, **overrides):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.config.update(overrides)

    # Extensions
    cors.init_app(app)
    init_collections(app)

    # Blueprints
    from .routes.collections_api import bp as collections_api

    app.register_blueprint(collections_api)

    return app
