"""FastAPI application — web chat, Twilio SMS and CRM lead endpoints.

Endpoints:

  POST   /chat                    Web chat turn: {message, userLang, userEmail} → {reply}
  POST   /twilio/incoming-sms     Twilio SMS webhook (form-encoded From, Body)
  POST   /lead-webhook            CRM lead → fresh session + greeting SMS (alias: /lead)
  GET    /setup/google            Redirect to Google's OAuth consent page
  GET    /auth/google/callback    OAuth code exchange, stores the calendar token
  GET    /api/sessions            Admin: list sessions (bearer token)
  GET    /api/sessions/{key}      Admin: one session
  DELETE /api/sessions/{key}      Admin: reset a session
  GET    /health                  Health check
  GET    /                        Browser chat page (web/index.html)

The SMS flow:
  1. Twilio posts an inbound SMS to /twilio/incoming-sms
  2. The sender's number is normalized and used as the session key
  3. The conversation advances one turn
  4. The reply goes back via the Messages API (SMS_REPLY_MODE=rest, default)
     or inline as TwiML (SMS_REPLY_MODE=twiml)
"""

from __future__ import annotations

# Load .env into os.environ early; oauthlib reads its OAUTHLIB_* switches
# from the process environment, not from our Settings object.
from dotenv import load_dotenv
load_dotenv()

import logging
import time
from pathlib import Path
from typing import Optional
from xml.etree.ElementTree import Element, SubElement, tostring

from chat_scheduler.config import settings

# Configure root logger early so all app loggers have a handler and are
# visible when run via `uvicorn chat_scheduler.app:app`.
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(name)-30s %(levelname)-7s %(message)s",
)

from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from chat_scheduler.assistant import SchedulingAssistant, redact_pii
from chat_scheduler.auth import require_admin_token
from chat_scheduler.errors import DeliveryError
from chat_scheduler.models.lead import Lead
from chat_scheduler.oauth import GoogleOAuth
from chat_scheduler.token_store import TokenStore

log = logging.getLogger("chat_scheduler.app")

_START_TIME = time.time()

WEB_DIR = Path(__file__).resolve().parent.parent / "web"


class ChatRequest(BaseModel):
    message: str
    userLang: str = "de"
    userEmail: Optional[str] = None


def create_app(
    assistant: SchedulingAssistant | None = None,
    oauth: GoogleOAuth | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``assistant`` and ``oauth`` default to instances built from
    :data:`~chat_scheduler.config.settings`; tests pass fakes.
    """
    for warning in settings.validate_startup():
        log.warning(warning)

    token_store = TokenStore(settings.token_file)
    if assistant is None:
        assistant = _build_assistant(token_store)
    if oauth is None:
        oauth = GoogleOAuth(
            client_id=settings.google_client_id,
            client_secret=settings.google_client_secret,
            redirect_uri=settings.google_redirect_uri,
            token_store=token_store,
        )

    app = FastAPI(
        title="Chat Scheduler",
        description="Conversational meeting booking over web chat and SMS",
        version="0.1.0",
    )
    app.state.assistant = assistant
    app.state.oauth = oauth

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Web chat ───────────────────────────────────────────────

    @app.post("/chat")
    async def chat(body: ChatRequest, request: Request) -> JSONResponse:
        """One chat turn. The user is identified by email, else by client IP."""
        user_key = body.userEmail or (request.client.host if request.client else "unknown")
        reply = await assistant.handle_message(user_key, body.message, body.userLang)
        return JSONResponse({"reply": reply})

    # ── Twilio SMS webhook ─────────────────────────────────────

    @app.post("/twilio/incoming-sms")
    async def twilio_incoming_sms(
        From: str = Form(default=""),
        Body: str = Form(default=""),
    ) -> Response:
        if not From.strip():
            return JSONResponse({"error": "Missing 'From'"}, status_code=400)

        sender = assistant.normalize_phone(From)
        log.info("Inbound SMS from %s", redact_pii(sender))
        reply = await assistant.handle_message(sender, Body)

        if settings.sms_reply_mode == "twiml":
            return Response(content=_twiml_message(reply), media_type="application/xml")

        try:
            await assistant.send_sms(sender, reply)
        except DeliveryError as e:
            log.error("Reply SMS to %s failed: %s", redact_pii(sender), e)
            return Response(content="Server error", status_code=500, media_type="text/plain")
        return Response(content="OK", media_type="text/plain")

    # ── CRM lead webhook ───────────────────────────────────────

    @app.post("/lead-webhook")
    @app.post("/lead")
    async def lead_webhook(lead: Lead) -> JSONResponse:
        """New CRM lead: start a session and send the greeting SMS."""
        log.info("Lead received (has_phone=%s, has_email=%s)", bool(lead.phone), bool(lead.email))
        try:
            await assistant.register_lead(lead)
        except ValueError as e:
            return JSONResponse({"error": str(e)}, status_code=400)
        except DeliveryError as e:
            log.error("Lead greeting SMS failed: %s", e)
            return JSONResponse({"error": "Fehler beim Senden der SMS"}, status_code=500)
        return JSONResponse({"success": True})

    # ── Google OAuth ───────────────────────────────────────────

    @app.get("/setup/google")
    async def setup_google() -> Response:
        if not oauth.configured:
            return JSONResponse(
                {"error": "GOOGLE_CLIENT_ID / GOOGLE_CLIENT_SECRET not configured"},
                status_code=500,
            )
        return RedirectResponse(oauth.authorization_url())

    @app.get("/auth/google/callback", response_class=HTMLResponse)
    async def google_callback(code: str = "", error: str = "") -> HTMLResponse:
        if error or not code:
            log.warning("OAuth callback without code (error=%s)", error or "none")
            return HTMLResponse("<h2>❌ Kein Autorisierungscode erhalten.</h2>", status_code=400)
        try:
            await run_in_threadpool(oauth.exchange_code, code)
        except Exception:
            log.exception("Google OAuth code exchange failed")
            return HTMLResponse("<h2>❌ Fehler bei der Google-Verbindung.</h2>", status_code=500)
        return HTMLResponse("<h2>✅ Kalender erfolgreich verbunden! Bot ist einsatzbereit.</h2>")

    # ── Session admin API ──────────────────────────────────────

    @app.get("/api/sessions", dependencies=[Depends(require_admin_token)])
    async def list_sessions() -> JSONResponse:
        sessions = assistant.list_sessions()
        return JSONResponse({
            "sessions": [s.to_dict() for s in sessions],
            "count": len(sessions),
        })

    @app.get("/api/sessions/{key}", dependencies=[Depends(require_admin_token)])
    async def get_session(key: str) -> JSONResponse:
        session = assistant.get_session(key)
        if not session:
            return JSONResponse({"error": "Session not found"}, status_code=404)
        return JSONResponse(session.to_dict())

    @app.delete("/api/sessions/{key}", dependencies=[Depends(require_admin_token)])
    async def reset_session(key: str) -> JSONResponse:
        if not assistant.reset_session(key):
            return JSONResponse({"error": "Session not found"}, status_code=404)
        return JSONResponse({"reset": True})

    # ── Static file serving (browser chat client) ──────────────

    if WEB_DIR.is_dir():
        app.mount("/static", StaticFiles(directory=str(WEB_DIR)), name="static")

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        index_path = WEB_DIR / "index.html"
        if index_path.exists():
            return HTMLResponse(content=index_path.read_text(encoding="utf-8"))
        return HTMLResponse(content=f"<h1>{settings.bot_name}</h1>")

    return app


# ── Helper functions ──────────────────────────────────────────────

def _twiml_message(text: str) -> str:
    """Wrap a reply in a TwiML <Response><Message> document."""
    response_el = Element("Response")
    message_el = SubElement(response_el, "Message")
    message_el.text = text
    return tostring(response_el, encoding="unicode", xml_declaration=True)


def _build_assistant(token_store: TokenStore) -> SchedulingAssistant:
    """Wire the assistant with the providers configured in settings."""
    from chat_scheduler.calendar_providers.google import GoogleCalendarProvider
    from chat_scheduler.channels.smtp_email import SmtpEmailSender
    from chat_scheduler.channels.twilio_sms import TwilioSmsSender
    from chat_scheduler.completion import OpenAICompletionProvider
    from chat_scheduler.conversation import ConversationMachine
    from chat_scheduler.session_store import InMemorySessionStore

    completion = None
    if settings.openai_api_key:
        completion = OpenAICompletionProvider(
            api_key=settings.openai_api_key,
            bot_name=settings.bot_name,
            persona=settings.bot_persona,
            model=settings.openai_model,
            temperature=settings.openai_temperature,
        )

    email_sender = None
    if settings.smtp_host and settings.email_from:
        email_sender = SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.email_from,
            username=settings.smtp_username,
            password=settings.smtp_password,
        )

    machine = ConversationMachine(
        calendar=GoogleCalendarProvider(token_store, calendar_id=settings.google_calendar_id),
        completion=completion,
        email_sender=email_sender,
        bot_name=settings.bot_name,
        trigger_keywords=settings.trigger_keywords,
        timezone=settings.calendar_timezone,
    )

    return SchedulingAssistant(
        machine=machine,
        store=InMemorySessionStore(
            ttl_seconds=settings.session_ttl_seconds,
            max_sessions=settings.max_sessions,
        ),
        sms_sender=TwilioSmsSender(
            account_sid=settings.twilio_account_sid,
            auth_token=settings.twilio_auth_token,
            from_number=settings.twilio_phone_number,
        ),
        bot_name=settings.bot_name,
        default_country_code=settings.default_country_code,
    )


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "chat_scheduler.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
