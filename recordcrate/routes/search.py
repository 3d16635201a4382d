from flask import Blueprint, Response, g, jsonify

from recordcrate.config import DEFAULT_SEARCH_LIMIT, get_config
from recordcrate.errors import InvalidRequestError
from recordcrate.routes.util import get_search_aggregator, json_body, string_field
from recordcrate.search import SearchOptions

search = Blueprint("search", __name__)


@search.route("/search", methods=["POST"])
def search_catalog() -> Response:
    body = json_body()

    query = body.get("query") or ""
    if not isinstance(query, str) or not query.strip():
        raise InvalidRequestError("Query is required")

    try:
        limit = int(body.get("limit") or DEFAULT_SEARCH_LIMIT)
    except (TypeError, ValueError) as error:
        raise InvalidRequestError("Limit must be a number") from error

    options = SearchOptions(
        query=query,
        result_type=string_field(body, "type", "Type must be a string") or "all",
        provider=string_field(body, "provider", "Provider must be a string") or "all",
        limit=limit,
        store_results=bool(body.get("store_results")),
        deadline=get_config().search_deadline,
    )
    g.logger.info(
        "Searching {!r} type={} provider={} limit={}",
        options.query,
        options.result_type,
        options.provider,
        options.limit,
    )

    results = get_search_aggregator().search(options)
    return jsonify(results.to_dict())
