"""
Jenkins CI/CD pipeline demo application built on FastAPI.
Serves a landing page, a health check and static app info for the pipeline to test.
"""
import html
import logging
import os
import sys
import time
from datetime import datetime, timezone
from pathlib import Path

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from starlette.types import Scope

APP_NAME = "Jenkins CI/CD Demo App"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "A sample application for learning Jenkins pipelines"
APP_AUTHOR = "DevOps Workshop"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")
DEFAULT_ENVIRONMENT = "development"

# Process start is taken as the moment this module is imported, which uvicorn
# does at boot. Monotonic, so uptime never goes backwards.
_STARTED_AT = time.monotonic()

logger = logging.getLogger(__name__)


class SettingsLoadError(RuntimeError):
    """Raised when runtime settings cannot be loaded or validated."""


class EnvironmentSettings(BaseSettings):
    """Environment label only, read on every landing page request.

    Kept apart from the server settings so an unrelated bad variable cannot
    break the page after startup.

    Attributes:
        environment: Environment label shown on the landing page (APP_ENV or NODE_ENV).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    environment: str = Field(
        default=DEFAULT_ENVIRONMENT,
        validation_alias=AliasChoices("APP_ENV", "NODE_ENV"),
    )

    @field_validator("environment")
    @classmethod
    def _validate_environment(cls, value: str) -> str:
        stripped_value = value.strip()
        if not stripped_value:
            raise ValueError("value must not be blank")
        return stripped_value


class AppSettings(EnvironmentSettings):
    """Runtime settings read from the process environment and an optional .env file.

    Attributes:
        host: Interface the server binds to.
        port: Port the server listens on.
        public_dir: Directory whose files are served verbatim.
        log_level: Level name for application and uvicorn logging.
    """

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    public_dir: Path = Field(default=Path("public"))
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        level_name = value.strip().upper()
        if level_name not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level_name


def get_settings() -> AppSettings:
    """Load settings fresh from the environment.

    Raises:
        SettingsLoadError: When a variable is present but invalid.
    """
    try:
        return AppSettings()
    except ValidationError as error:
        raise SettingsLoadError(
            f"Configuration validation failed. Check environment variables or .env. Details: {error}"
        ) from error


def get_environment_label() -> str:
    """Current environment label; falls back to the default when the value is blank."""
    try:
        return EnvironmentSettings().environment
    except ValidationError:
        logger.warning("Invalid APP_ENV/NODE_ENV value, showing %r", DEFAULT_ENVIRONMENT)
        return DEFAULT_ENVIRONMENT


class PublicFiles(StaticFiles):
    """Static file server that answers 404 rather than 405 for other methods.

    A missing directory serves nothing instead of failing the first request.
    """

    async def check_config(self) -> None:
        """Skip the directory existence check when the directory is absent."""
        if self.directory is not None and not os.path.isdir(self.directory):
            return
        await super().check_config()

    async def get_response(self, path: str, scope: Scope) -> Response:
        """Serve GET/HEAD from the directory, 404 for everything else."""
        if scope["method"] not in ("GET", "HEAD"):
            raise HTTPException(status_code=404)
        return await super().get_response(path, scope)


LANDING_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Jenkins CI/CD Demo</title>
    <style>
        body {{
            font-family: Arial, sans-serif;
            max-width: 800px;
            margin: 50px auto;
            padding: 20px;
            background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
            color: white;
        }}
        .container {{
            background: rgba(255, 255, 255, 0.1);
            padding: 40px;
            border-radius: 10px;
        }}
        h1 {{ margin-top: 0; }}
        .badge {{
            display: inline-block;
            padding: 5px 10px;
            background: #4CAF50;
            border-radius: 5px;
            margin: 10px 5px;
        }}
    </style>
</head>
<body>
    <div class="container">
        <h1>&#128640; Jenkins CI/CD Pipeline Demo</h1>
        <p>Welcome to the DevOps Workshop demonstration application!</p>
        <div class="badge">&#10003; Build Successful</div>
        <div class="badge">&#10003; Tests Passed</div>
        <div class="badge">&#10003; Deployed</div>
        <h2>About This Demo</h2>
        <p>This is a simple Python application designed to demonstrate:</p>
        <ul>
            <li>Automated builds with Jenkins</li>
            <li>Continuous Integration/Continuous Deployment</li>
            <li>Docker containerization</li>
            <li>Automated testing</li>
            <li>Pipeline as Code</li>
        </ul>
        <p><strong>Version:</strong> {version}</p>
        <p><strong>Environment:</strong> {environment}</p>
    </div>
</body>
</html>
"""


def render_landing_page(environment: str) -> str:
    """Fill the landing page template with the version and environment label."""
    return LANDING_PAGE.format(version=APP_VERSION, environment=html.escape(environment))


def uptime_seconds() -> float:
    """Seconds elapsed since process start (module import)."""
    return time.monotonic() - _STARTED_AT


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Build the FastAPI application.

    The public directory is resolved once here; the environment label is read
    on every landing page request.

    Args:
        settings: Settings used for static file serving (default: loaded from environment)

    Returns:
        Application with the demo routes and the public directory mounted behind them
    """
    settings = settings or get_settings()
    application = FastAPI(title=APP_NAME, version=APP_VERSION, description=APP_DESCRIPTION)

    # Express-style matching: GET also answers HEAD, and a trailing slash is ignored.
    methods = ["GET", "HEAD"]

    @application.api_route("/", methods=methods, response_class=HTMLResponse)
    async def landing_page(environment: str = Depends(get_environment_label)):
        """Landing page showing pipeline badges and the running environment."""
        return render_landing_page(environment)

    @application.api_route("/health", methods=methods)
    @application.api_route("/health/", methods=methods, include_in_schema=False)
    async def health_check():
        """Liveness probe for orchestration tooling."""
        return {
            "status": "healthy",
            "timestamp": utc_timestamp(),
            "uptime": uptime_seconds(),
        }

    @application.api_route("/api/info", methods=methods)
    @application.api_route("/api/info/", methods=methods, include_in_schema=False)
    async def app_info():
        """Static application metadata."""
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "description": APP_DESCRIPTION,
            "author": APP_AUTHOR,
        }

    # Mounted last so the routes above take precedence.
    if not settings.public_dir.is_dir():
        logger.debug("Public directory %s not found, no static files will be served", settings.public_dir)
    application.mount("/", PublicFiles(directory=settings.public_dir, check_dir=False), name="public")

    return application


app = create_app()


def main() -> None:
    """Load settings, configure logging and serve the app with uvicorn."""
    settings = get_settings()
    logging.basicConfig(
        stream=sys.stdout,
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Server running on http://localhost:%d", settings.port)
    logger.info("Health check available at http://localhost:%d/health", settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    # Run the app when called as a module
    main()
