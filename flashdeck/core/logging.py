import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> None:
    """
    Configure le logging racine une seule fois (appelé par create_app).
    """
    numeric = getattr(logging, (level or "INFO").upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=numeric, format=LOG_FORMAT)
    root.setLevel(numeric)

    # SQLAlchemy est très bavard en DEBUG
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
