"""
SurfApp: location search with weather and marine conditions
------------------------------------------------------------

This Flask application lets a user search for any place worldwide and view
its current weather and marine conditions.  Place names are resolved with
the Open-Meteo geocoding API; the weather forecast and marine APIs supply
the conditions (all free, no API key).

Each page load opens a fresh ``SearchSession`` that holds the page state
server side.  The page posts keystrokes to the session, which waits for
typing to pause before querying the geocoder, and re-renders its panels
from the session state.

The application exposes these endpoints:

* ``/`` -- HTML page with the search box; always starts with an empty state.
* ``/sessions/<sid>`` -- HTML page for an existing session (form fallback).
* ``/api/sessions/<sid>/query`` -- POST the search box text.
* ``/api/sessions/<sid>/select`` -- POST the index of a candidate to select.
* ``/api/sessions/<sid>/panels`` -- Rendered dropdown and panels fragment.
* ``/api/sessions/<sid>/state`` -- The session state as JSON.
* ``/api/search``, ``/api/weather``, ``/api/marine`` -- JSON access to the
  three Open-Meteo clients.

Nothing is persisted.  Upstream failures are logged and shown as empty or
"not available" panels; the page stays usable.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from flask import (
    Flask,
    abort,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)

import display
import openmeteo
from config import get_settings
from session import SearchSession, SessionRegistry

LOGGER = logging.getLogger(__name__)

# Set up Flask app
app = Flask(__name__)
app.config["SECRET_KEY"] = get_settings().secret_key

app.add_template_filter(display.format_temperature, "temperature")
app.add_template_filter(display.format_coordinate, "coordinate")
app.add_template_filter(display.format_wave_height, "wave_height")
app.add_template_filter(display.format_elevation, "elevation")
app.add_template_filter(display.format_wind, "wind")
app.add_template_filter(display.format_time_of_day, "time_of_day")
app.add_template_filter(display.format_timezone, "timezone")


@app.context_processor
def page_timing() -> dict:
    """Expose how long the page keeps polling after the last keystroke."""
    return {"poll_window_ms": get_settings().debounce_ms + 1000}


sessions = SessionRegistry()


def _get_session(session_id: str) -> SearchSession:
    session = sessions.get(session_id)
    if session is None:
        abort(404)
    return session


def _wants_json() -> bool:
    """True for calls made by the page script rather than a plain form post."""
    return request.is_json or request.headers.get("X-Requested-With") == "fetch"


def _payload() -> dict:
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form.to_dict()


def _parse_coordinates() -> Tuple[Optional[float], Optional[float]]:
    lat = request.args.get("lat")
    lon = request.args.get("lon") or request.args.get("lng")
    if lat is None or lon is None:
        return None, None
    return float(lat), float(lon)


@app.errorhandler(404)
def not_found(exc: Any) -> Any:
    if request.path.startswith("/api/"):
        return jsonify({"error": "Unknown session"}), 404
    return "Not found", 404


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------

@app.route("/")
def index() -> str:
    """Render the search page for a brand new session."""
    session = sessions.create()
    return render_template("index.html", session_id=session.session_id, state=session.state)


@app.route("/sessions/<session_id>")
def session_page(session_id: str) -> str:
    """Render the page for an existing session (used after form posts)."""
    session = _get_session(session_id)
    return render_template("index.html", session_id=session_id, state=session.state)


# ---------------------------------------------------------------------------
# Session API
# ---------------------------------------------------------------------------

@app.route("/api/sessions/<session_id>/query", methods=["POST"])
def session_query(session_id: str) -> Any:
    """Update the search box text.

    Script calls get 204 and the search runs once typing pauses.  They also
    send ``seq``, a counter that rises with every keystroke, so an update
    that arrives after a newer one is dropped.  A plain form submission
    runs the search right away and redirects back to the session page.
    """
    session = _get_session(session_id)
    payload = _payload()
    query = str(payload.get("q", ""))
    seq = payload.get("seq")
    if seq is not None:
        try:
            seq = int(seq)
        except (TypeError, ValueError):
            LOGGER.warning("Rejected query for session %s: bad seq %r", session_id, seq)
            return jsonify({"error": "Invalid sequence number"}), 400
    session.set_query(query, seq)
    if _wants_json():
        return "", 204
    session.flush_search()
    return redirect(url_for("session_page", session_id=session_id))


@app.route("/api/sessions/<session_id>/select", methods=["POST"])
def session_select(session_id: str) -> Any:
    """Select the candidate at the posted ``index``."""
    session = _get_session(session_id)
    try:
        index = int(_payload().get("index"))
        session.select_candidate(index)
    except (TypeError, ValueError, IndexError) as exc:
        LOGGER.warning("Rejected selection for session %s: %s", session_id, exc)
        return jsonify({"error": "Invalid candidate index"}), 400
    if _wants_json():
        return "", 204
    return redirect(url_for("session_page", session_id=session_id))


@app.route("/api/sessions/<session_id>/panels")
def session_panels(session_id: str) -> str:
    """Return the dropdown and result panels rendered from the session state."""
    session = _get_session(session_id)
    return render_template("_panels.html", session_id=session_id, state=session.state)


@app.route("/api/sessions/<session_id>/state")
def session_state(session_id: str) -> Any:
    """Return the current session state as JSON."""
    session = _get_session(session_id)
    return jsonify(session.state.to_dict())


# ---------------------------------------------------------------------------
# Direct client access
# ---------------------------------------------------------------------------

@app.route("/api/search")
def api_search() -> Any:
    """Return geocoding candidates for ``?q=`` (empty list for a blank query)."""
    query = request.args.get("q", "")
    return jsonify({"results": [loc.to_dict() for loc in openmeteo.search_locations(query)]})


@app.route("/api/weather")
def api_weather() -> Any:
    """Return current weather for ``?lat=&lon=``; ``weather`` is null on failure."""
    try:
        lat, lon = _parse_coordinates()
    except ValueError:
        return jsonify({"error": "Invalid coordinates"}), 400
    if lat is None or lon is None:
        return jsonify({"error": "Provide lat and lon"}), 400
    weather = openmeteo.fetch_weather(lat, lon)
    return jsonify({"weather": weather.to_dict() if weather else None})


@app.route("/api/marine")
def api_marine() -> Any:
    """Return marine conditions for ``?lat=&lon=`` or ``{"noData": true}``."""
    try:
        lat, lon = _parse_coordinates()
    except ValueError:
        return jsonify({"error": "Invalid coordinates"}), 400
    if lat is None or lon is None:
        return jsonify({"error": "Provide lat and lon"}), 400
    return jsonify({"marine": openmeteo.fetch_marine(lat, lon).to_dict()})


if __name__ == "__main__":
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.run(host="0.0.0.0", port=get_settings().port)
