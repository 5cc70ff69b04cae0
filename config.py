import os
from dotenv import load_dotenv

load_dotenv()  # Load variables from the .env file


def _database_uri():
    url = os.getenv('DATABASE_URL')
    if url:
        return url

    db_host = os.getenv('DB_HOST')
    if db_host:
        db_user = os.getenv('DB_USER')
        db_password = os.getenv('DB_PASSWORD')
        db_name = os.getenv('DB_NAME')
        # Build MySQL connection string (using PyMySQL driver)
        return (
            f"mysql+pymysql://{db_user}@{db_host}/{db_name}"
            if not db_password else
            f"mysql+pymysql://{db_user}:{db_password}@{db_host}/{db_name}"
        )

    return "sqlite:///jobbooster.db"


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'change-me-in-production')
    JWT_SECRET_KEY = os.getenv('JWT_SECRET_KEY', SECRET_KEY)
    JWT_ACCESS_TOKEN_HOURS = int(os.getenv('JWT_ACCESS_TOKEN_HOURS', '3'))

    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False  # disables overhead warning

    # OpenAI-compatible endpoint, a local Ollama server by default
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY', 'ollama')
    OPENAI_BASE_URL = os.getenv('OPENAI_BASE_URL', 'http://localhost:11434/v1')
    OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-oss')
    OPENAI_TIMEOUT = float(os.getenv('OPENAI_TIMEOUT', '30'))
    OPENAI_MAX_RETRIES = int(os.getenv('OPENAI_MAX_RETRIES', '3'))
    OPENAI_RETRY_BACKOFF = float(os.getenv('OPENAI_RETRY_BACKOFF', '0.5'))

    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', 'user_uploads')
    MAX_UPLOAD_MB = int(os.getenv('MAX_UPLOAD_MB', '10'))
    # Hard cap for request bodies; the upload route reports the friendly limit itself
    MAX_CONTENT_LENGTH = 32 * 1024 * 1024

    CORS_ORIGINS = os.getenv('CORS_ORIGINS', 'http://localhost:3000').split(',')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    DATA_RETENTION_DAYS = int(os.getenv('DATA_RETENTION_DAYS', '30'))


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret'
    JWT_SECRET_KEY = 'test-jwt-secret-with-enough-length-for-hs256'
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    OPENAI_MAX_RETRIES = 0
    OPENAI_RETRY_BACKOFF = 0.0
    LOG_LEVEL = 'DEBUG'
