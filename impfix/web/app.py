"""FastAPI application factory."""

import base64
import binascii
import secrets

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from impfix.config import settings

app = FastAPI(title="impfix", docs_url=None, redoc_url=None)


# --- HTTP Basic Auth middleware (protects all routes) ---
class BasicAuthMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        auth = request.headers.get("authorization")
        if auth:
            try:
                scheme, credentials = auth.split(" ", 1)
                if scheme.lower() == "basic":
                    decoded = base64.b64decode(credentials).decode("utf-8")
                    username, password = decoded.split(":", 1)
                    if (
                        secrets.compare_digest(username, settings.web_username)
                        and secrets.compare_digest(password, settings.web_password)
                    ):
                        return await call_next(request)
            except (ValueError, binascii.Error, UnicodeDecodeError):
                pass  # malformed header, fall through to 401

        return Response(
            content="Unauthorized",
            status_code=401,
            headers={"WWW-Authenticate": 'Basic realm="impfix"'},
        )


app.add_middleware(BasicAuthMiddleware)

# Import routes after app is defined to avoid circular import
from impfix.web.routes import impression, rules  # noqa: E402

app.include_router(impression.router)
app.include_router(rules.router)
