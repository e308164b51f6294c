from flask import Blueprint, jsonify, request

from onramp.extensions import limiter
from onramp.services.container import get_services

webhooks_bp = Blueprint("webhooks", __name__)


@webhooks_bp.route("/webhook/payment", methods=["POST"])
@limiter.limit("50 per minute")
def payment_webhook():
    payload = request.get_data(cache=True)
    body = request.get_json(silent=True) or {}
    result = get_services().webhooks.handle(payload, request.headers, body)
    return jsonify(result), 200
