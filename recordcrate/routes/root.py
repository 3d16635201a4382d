from flask import Blueprint, Response, jsonify

from recordcrate.models import Provider
from recordcrate.providers.registry import get_registry

root = Blueprint("root", __name__)

PROVIDER_DISPLAY_NAMES = {
    Provider.SPOTIFY: "Spotify",
    Provider.APPLE_MUSIC: "Apple Music",
}


@root.route("/health-check")
def health_check() -> str:
    return "success"


@root.route("/providers")
def list_providers() -> Response:
    providers = [
        {"id": name, "name": PROVIDER_DISPLAY_NAMES.get(name, name)}
        for name in get_registry().available()
    ]
    return jsonify({"providers": providers})
