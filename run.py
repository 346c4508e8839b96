import os

from docstore import create_app
from docstore.config import DevConfig, ProdConfig


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


debug = _flag("DEBUG", "false")
app = create_app(DevConfig if debug else ProdConfig)


def ssl_context():
    """(cert, key) unless TLS=disable or no certificate is configured."""
    if os.getenv("TLS", "").strip().lower() == "disable":
        return None
    cert = os.getenv("TLS_CERT_FILE")
    key = os.getenv("TLS_KEY_FILE")
    if cert and key:
        return cert, key
    app.logger.warning("TLS_CERT_FILE/TLS_KEY_FILE not set; serving plain HTTP")
    return None


if __name__ == "__main__":
    context = ssl_context()
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "443" if context else "8080"))
    app.run(host=host, port=port, debug=debug, threaded=True, ssl_context=context)
