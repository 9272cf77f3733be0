import os
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
	# Accept a direct URL (supports either DATABASE_URL or database_url env vars)
	database_url: str | None = None

	# Individual parts; when DB_HOST is empty we fall back to a local SQLite file
	DB_DRIVER: str = "postgresql"
	DB_HOST: str = ""
	DB_USER: str = ""
	DB_PASSWORD: str = ""
	DB_NAME: str = ""
	DB_PORT: int = 5432
	SQLITE_PATH: str = "tripplanner.db"

	SECRET_KEY: str = "secret"
	ALGORITHM: str = "HS256"
	ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

	# Completion model
	GOOGLE_GEMINI_API_KEY: str | None = None
	GEMINI_MODEL: str = "gemini-2.5-flash"
	MODEL_TIMEOUT_SECONDS: float = 120.0
	MODEL_MAX_RETRIES: int = 3
	STRUCTURE_MAX_TOKENS: int = 4096
	ACTIVITIES_MAX_TOKENS: int = 12288
	STRUCTURED_TEMPERATURE: float = 0.4

	# Place enrichment (Google Places Text Search)
	GOOGLE_MAPS_API_KEY: str | None = None
	PLACES_BASE_URL: str = "https://places.googleapis.com/v1/places:searchText"
	PLACES_TIMEOUT_SECONDS: float = 8.0
	PLACES_CONCURRENCY: int = 5
	PLACES_LANGUAGE: str = "en"

	# Cover images
	UNSPLASH_ACCESS_KEY: str | None = None
	UNSPLASH_BASE_URL: str = "https://api.unsplash.com"
	UNSPLASH_TIMEOUT_SECONDS: float = 5.0

	# Web push
	VAPID_PUBLIC_KEY: str | None = None
	VAPID_PRIVATE_KEY: str | None = None
	VAPID_SUBJECT: str = "mailto:support@example.com"
	PUSH_TIMEOUT_SECONDS: float = 10.0
	NOTIFICATION_DEDUP_HOURS: int = 20
	SITE_URL: str = "http://localhost:8081"

	# Credit cost schedule
	STRUCTURE_CREDIT_COST: int = 3
	ACTIVITY_CREDIT_COST: int = 1
	ACTIVITY_CREDIT_BLOCK_DAYS: int = 7

	# Job execution: "inline" runs after the response, "worker" leaves jobs for app.worker
	PLAN_JOB_EXECUTION: str = "inline"
	WORKER_POLL_SECONDS: float = 2.0
	JOB_LEASE_SECONDS: int = 900

	# Per-user submission limit (fixed window, shared through the database)
	RATE_LIMIT_MAX_REQUESTS: int = 10
	RATE_LIMIT_WINDOW_SECONDS: int = 60

	# Observability / Telemetry flags
	ENABLE_REQUEST_LOGGING: bool = True
	ENABLE_OUTBOUND_LOGGING: bool = True
	LOG_SAMPLE_RATE: float = 1.0
	LOG_LEVEL: str = "INFO"

	@property
	def DATABASE_URL(self) -> str:
		# explicit URL (settings, then raw env), then parts, then SQLite
		for candidate in (self.database_url, os.getenv("DATABASE_URL")):
			if candidate and candidate.strip():
				return candidate.strip()
		if self.DB_HOST:
			return f"{self.DB_DRIVER}://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
		return f"sqlite:///{self.SQLITE_PATH}"

	@property
	def push_enabled(self) -> bool:
		return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

	# Pydantic v2 settings config
	model_config = SettingsConfigDict(
		env_file=".env",
		extra="ignore",  # tolerate unrelated env vars like database_url
		case_sensitive=False,  # accept lowercase keys on Windows and in .env
	)

settings = Settings()
