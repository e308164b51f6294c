from flask import Blueprint, jsonify, request

from onramp.extensions import limiter
from onramp.schemas import QuoteRequest, parse_request
from onramp.services.container import get_services

quotes_bp = Blueprint("quotes", __name__)


@quotes_bp.route("/quote", methods=["POST"])
@limiter.limit("10 per minute")
def create_quote():
    services = get_services()
    payload = parse_request(QuoteRequest, request.get_json(silent=True), limits=services.limits)
    quote = services.quotes.compute_quote(payload.token_symbol, payload.amount_fiat_minor)
    return jsonify(quote.to_dict())
