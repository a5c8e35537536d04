from mediashelf.routes.lookup import bp as lookup_bp
from mediashelf.routes.imports import bp as imports_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(lookup_bp)
    app.register_blueprint(imports_bp)
