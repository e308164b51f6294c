from flask import Blueprint, jsonify

from onramp.services.container import get_services

rates_bp = Blueprint("rates", __name__)


@rates_bp.route("/rates", methods=["GET"])
def list_rates():
    """
    Current rate per supported token.

    Refreshes from the price feed first; a feed failure falls back to
    whatever the cache still holds and never fails the request.
    """
    services = get_services()
    services.rates.refresh()
    return jsonify(services.rates.snapshot())
