import os

basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev_secret_key_change_me")

    # SQLite local por defecto; en producción DATABASE_URL apunta a PostgreSQL
    DB_PATH = os.environ.get("DB_PATH", os.path.join(basedir, "inventory.db"))
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cookies de sesión más seguras (ajusta en producción)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    # Logs: None desactiva el archivo rotativo
    LOG_DIR = os.environ.get("LOG_DIR", os.path.join(basedir, "logs"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    DEFAULT_PAGE_SIZE = int(os.environ.get("DEFAULT_PAGE_SIZE", "10"))
    MAX_PAGE_SIZE = int(os.environ.get("MAX_PAGE_SIZE", "100"))

    # RCP000001, DEL000001...
    REFERENCE_PAD_WIDTH = int(os.environ.get("REFERENCE_PAD_WIDTH", "6"))

    # Asistente de IA (compatible con OpenAI). Sin API key queda deshabilitado.
    AI_API_KEY = os.environ.get("AI_API_KEY") or os.environ.get("OPENAI_API_KEY")
    AI_BASE_URL = os.environ.get("AI_BASE_URL", "https://openrouter.ai/api/v1")
    AI_MODEL = os.environ.get("AI_MODEL", "gpt-4o-mini")
    AI_TIMEOUT_SECONDS = float(os.environ.get("AI_TIMEOUT_SECONDS", "20"))
