from pydantic import BaseModel
import os


from dotenv import load_dotenv
load_dotenv()
class Settings(BaseModel):
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///./anonyworks.db")
    app_name: str = os.getenv("APP_NAME", "AnonyWorks")
    environment: str = os.getenv("ENVIRONMENT", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    jwt_secret: str = os.getenv("JWT_SECRET", "change-me")
    jwt_issuer: str = os.getenv("JWT_ISSUER", "anonyworks-api")
    # Bearer credentials are not refreshed, so they live for a working week by default
    access_ttl_min: int = int(os.getenv("ACCESS_TOKEN_TTL_MIN", "10080"))

    smtp_server: str = os.getenv("SMTP_SERVER", "")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_password: str = os.getenv("SMTP_PASSWORD", "")
    mail_from: str = os.getenv("MAIL_FROM", "")
    mail_from_name: str = os.getenv("MAIL_FROM_NAME", "AnonyWorks")

    google_client_id: str = os.getenv("GOOGLE_CLIENT_ID", "")
    google_client_secret: str = os.getenv("GOOGLE_CLIENT_SECRET", "")
    google_redirect_uri: str = os.getenv("GOOGLE_REDIRECT_URI", "")

    # Professional Mode refinement
    openai_api_key: str = os.getenv("OPENAI_API_KEY", "")
    refinement_model: str = os.getenv("REFINEMENT_MODEL", "gpt-4o-mini")
    refinement_timeout_seconds: float = float(os.getenv("REFINEMENT_TIMEOUT_SECONDS", "15"))

    cors_origins: str = os.getenv("CORS_ORIGINS", "*")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

settings = Settings()
