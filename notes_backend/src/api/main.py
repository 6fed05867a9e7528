import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Depends, Form, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api import credentials, notes, sessions
from api.errors import AuthenticationFailed, InvalidInput, LoginRequired, NotOwner, UsernameTaken
from api.gateway import SessionMiddleware, current_session, require_login
from api.sessions import Identity, SessionHandle
from notes_database.db import SessionLocal
from notes_database.init_db import init_db

_logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent
templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    db = SessionLocal()
    try:
        sessions.purge_expired(db)
    finally:
        db.close()
    yield


# FastAPI app config
app = FastAPI(
    title="Personal Notes",
    description="Server-rendered notes app with session-cookie login.",
    version="1.0.0",
    lifespan=lifespan,
    openapi_tags=[
        {"name": "Authentication", "description": "Registration, login and logout"},
        {"name": "Notes", "description": "Create, list and search your own notes"}
    ]
)
app.add_middleware(SessionMiddleware, session_factory=SessionLocal)

# DATABASE Dependency
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def render(request: Request, template_name: str, ctx: Optional[dict] = None, status_code: int = 200):
    """TemplateResponse wrapper injecting the logged-in identity (or None)."""
    session = current_session(request)
    base_ctx = {"current_user": session.identity if session.is_authenticated else None}
    return templates.TemplateResponse(
        request, template_name, {**base_ctx, **(ctx or {})}, status_code=status_code
    )


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


#####################
# ERROR HANDLERS
#####################

@app.exception_handler(LoginRequired)
def login_required_handler(request, exc):
    return redirect("/unauthorized")


@app.exception_handler(NotOwner)
def not_owner_handler(request, exc):
    return redirect("/unauthorized")


@app.exception_handler(SQLAlchemyError)
def persistence_error_handler(request, exc):
    _logger.exception("Persistence failure on %s %s", request.method, request.url.path)
    return PlainTextResponse("Internal Server Error", status_code=500)


@app.exception_handler(StarletteHTTPException)
def custom_http_exception_handler(request, exc):
    return render(request, "error.html", {"status_code": exc.status_code, "detail": exc.detail},
                  status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
def validation_error_handler(request, exc):
    return render(request, "error.html", {"status_code": 422, "detail": "Invalid request."},
                  status_code=422)


#####################
# GENERAL
#####################

@app.get("/", summary="Home page", tags=["General"])
def home(request: Request):
    return render(request, "home.html")

# Root Health Check
@app.get("/health", summary="Health Check", tags=["General"])
def health_check():
    """Simple health check endpoint."""
    return {"message": "Healthy"}

@app.get("/unauthorized", summary="Login required page", tags=["General"])
def unauthorized(request: Request):
    return render(request, "unauthorized.html")


#####################
# AUTH ENDPOINTS
#####################

@app.get("/new", summary="Registration form", tags=["Authentication"])
def register_form(request: Request):
    return render(request, "login.html", {"title": "Sign Up", "action": "/new"})

# PUBLIC_INTERFACE
@app.post("/new", summary="Register a new user", tags=["Authentication"])
def register(username: str = Form(""), password: str = Form(""), db=Depends(get_db)):
    """
    Register a new user, then send them to the login form.
    Failures (blank fields, taken username) land on the same page.
    """
    try:
        credentials.register(db, username, password)
    except InvalidInput:
        _logger.info("Registration rejected: blank username or password")
    except UsernameTaken:
        _logger.info("Registration rejected: username is taken")
    return redirect("/login")

@app.get("/login", summary="Login form", tags=["Authentication"])
def login_form(request: Request):
    return render(request, "login.html", {"title": "Login", "action": "/login"})

# PUBLIC_INTERFACE
@app.post("/login", summary="Log in and start a session", tags=["Authentication"])
def login(
    username: str = Form(""),
    password: str = Form(""),
    db=Depends(get_db),
    session: SessionHandle = Depends(current_session),
):
    """
    Check credentials and promote the session.
    Unknown user and wrong password get the same redirect.
    """
    try:
        user = credentials.authenticate(db, username, password)
    except AuthenticationFailed:
        return redirect("/login")
    # saved before the redirect is built
    sessions.set_identity(db, session, Identity(user_id=user.id, username=user.username))
    return redirect("/members-only")

# PUBLIC_INTERFACE
@app.get("/logout", summary="Log out", tags=["Authentication"])
def logout(db=Depends(get_db), session: SessionHandle = Depends(current_session)):
    """Destroy the session and clear the cookie."""
    if session.is_authenticated:
        _logger.info("Logging out user id=%s", session.user_id)
    sessions.destroy(db, session)
    return redirect("/")

@app.get("/members-only", summary="Members page", tags=["Authentication"])
def members_only(request: Request, identity: Identity = Depends(require_login)):
    return render(request, "member.html", {"username": identity.username})


#####################
# NOTES ENDPOINTS
#####################

@app.get("/note/create", summary="Note form", tags=["Notes"])
def note_form(request: Request, identity: Identity = Depends(require_login)):
    return render(request, "note_form.html")

# PUBLIC_INTERFACE
@app.post("/note/create", summary="Create a new note", tags=["Notes"])
def create_note(
    title: str = Form(""),
    content: str = Form(""),
    user_id: Optional[str] = Form(None),
    db=Depends(get_db),
    identity: Identity = Depends(require_login),
):
    """
    Create a note for the logged-in user.
    A user_id field in the form is only accepted if it names the same user.
    """
    notes.ensure_owner(identity, user_id)
    try:
        notes.create_note(db, identity, title, content)
    except InvalidInput:
        return redirect("/note/create")
    return redirect("/note")

# PUBLIC_INTERFACE
@app.get("/note", summary="List my notes", tags=["Notes"])
def list_notes(request: Request, db=Depends(get_db), identity: Identity = Depends(require_login)):
    return render(request, "notes.html", {"notes": notes.list_notes(db, identity)})

# PUBLIC_INTERFACE
@app.get("/note/{note_id}", summary="Get a single note by id", tags=["Notes"])
def get_note(request: Request, note_id: int, db=Depends(get_db)):
    """
    Retrieve a single note by id. No login and no ownership check: the id
    works as a shareable link.
    """
    note = notes.get_note(db, note_id)
    if not note:
        raise HTTPException(status_code=404, detail="Note not found.")
    return render(request, "note.html", {"note": note})

# PUBLIC_INTERFACE
@app.get("/search", summary="Search my notes by title", tags=["Notes"])
def search_form(
    request: Request,
    title: Optional[str] = None,
    db=Depends(get_db),
    identity: Identity = Depends(require_login),
):
    results = notes.search_notes(db, identity, title) if title else None
    return render(request, "search.html", {"query": title or "", "results": results})

# PUBLIC_INTERFACE
@app.post("/search", summary="Search my notes by title", tags=["Notes"])
def search(
    request: Request,
    title: str = Form(""),
    db=Depends(get_db),
    identity: Identity = Depends(require_login),
):
    return render(request, "search.html", {"query": title, "results": notes.search_notes(db, identity, title)})
