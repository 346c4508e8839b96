import os
from dotenv import load_dotenv

load_dotenv()

_SIZE_UNITS = {"K": 1024, "M": 1024 ** 2, "G": 1024 ** 3}


def parse_size(value: str) -> int:
    """Parse a body limit such as ``512K`` or ``5M`` into bytes."""
    text = str(value).strip().upper().rstrip("B")
    if text and text[-1] in _SIZE_UNITS:
        return int(float(text[:-1]) * _SIZE_UNITS[text[-1]])
    return int(text)


class Config:
    COLLECTIONS_ROOT = os.getenv("COLLECTIONS_ROOT", "collections")
    BODY_LIMIT = os.getenv("BODY_LIMIT", "5M")
    MAX_CONTENT_LENGTH = parse_size(BODY_LIMIT)
    SECRET_KEY = os.getenv("SECRET_KEY")


class DevConfig(Config):
    DEBUG = True


class ProdConfig(Config):
    DEBUG = False
