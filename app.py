import logging
import sys
import threading
from dataclasses import dataclass, field

from flask import Blueprint, Flask, current_app, render_template, request
from jinja2 import TemplateError

LAYOUT_NAME = "layout"
TEMPLATE_NAMES = ("welcome", "form", "thanks", "sorry", "list")
STORE_KEY = "rsvp_responses"

bp = Blueprint("rsvp", __name__)


class Config:
    HOST = "0.0.0.0"
    PORT = 5000
    DEBUG = False

    TEMPLATE_NAMES = TEMPLATE_NAMES
    # Templates are read once at startup.
    TEMPLATES_AUTO_RELOAD = False


class TemplateLoadError(Exception):
    """Raised when a page template cannot be loaded at startup."""


@dataclass(frozen=True)
class Rsvp:
    name: str = ""
    email: str = ""
    phone: str = ""
    will_attend: bool = False


@dataclass
class FormData:
    rsvp: Rsvp
    errors: list = field(default_factory=list)


class ResponseStore:
    """Append-only, in-memory list of RSVP responses."""

    def __init__(self):
        self._responses = []
        self._lock = threading.Lock()

    def append(self, rsvp):
        with self._lock:
            self._responses.append(rsvp)

    def all(self):
        with self._lock:
            return list(self._responses)

    def __len__(self):
        with self._lock:
            return len(self._responses)


def _get_template(app, name):
    try:
        return app.jinja_env.get_template(f"{name}.html")
    except TemplateError as exc:
        raise TemplateLoadError(f"could not load template {name!r}: {exc}") from exc


def load_templates(app):
    """Compile the layout and every page template, failing fast on the first error."""
    _get_template(app, LAYOUT_NAME)
    for index, name in enumerate(app.config["TEMPLATE_NAMES"]):
        _get_template(app, name)
        app.logger.info("Loaded template %d %s", index, name)


def render(name, data=None):
    return render_template(f"{name}.html", data=data)


def get_store():
    return current_app.extensions[STORE_KEY]


def read_form(form):
    # A key missing from the body reads as empty and fails validation below.
    return Rsvp(
        name=form.get("name", ""),
        email=form.get("email", ""),
        phone=form.get("phone", ""),
        will_attend=form.get("willattend", "") == "true",
    )


def validate_rsvp(rsvp):
    errors = []
    if rsvp.name == "":
        errors.append("Please enter your name")
    if rsvp.email == "":
        errors.append("Please enter your email address")
    if rsvp.phone == "":
        errors.append("Please enter your phone number")
    return errors


@bp.get("/")
def welcome():
    return render("welcome")


@bp.get("/list")
def list_responses():
    return render("list", get_store().all())


@bp.get("/form")
def show_form():
    return render("form", FormData(rsvp=Rsvp(), errors=[]))


@bp.post("/form")
def submit_form():
    rsvp = read_form(request.form)
    errors = validate_rsvp(rsvp)
    if errors:
        current_app.logger.debug("Rejected RSVP with %d error(s)", len(errors))
        return render("form", FormData(rsvp=rsvp, errors=errors))

    get_store().append(rsvp)
    current_app.logger.info("Stored RSVP from %s (attending: %s)", rsvp.name, rsvp.will_attend)
    if rsvp.will_attend:
        return render("thanks", rsvp.name)
    return render("sorry", rsvp.name)


def create_app(test_config=None, template_folder="templates"):
    app = Flask(__name__, template_folder=template_folder)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    load_templates(app)
    app.extensions[STORE_KEY] = ResponseStore()
    app.register_blueprint(bp)
    return app


def main():
    logging.basicConfig(level=logging.INFO)
    log = logging.getLogger(__name__)
    try:
        app = create_app()
    except TemplateLoadError as exc:
        log.error("%s", exc)
        sys.exit(1)

    # Werkzeug reports a failed bind and exits on its own.
    app.run(host=app.config["HOST"], port=app.config["PORT"], debug=app.config["DEBUG"])


if __name__ == "__main__":
    main()
