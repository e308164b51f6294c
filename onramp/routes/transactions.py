import logging

from flask import Blueprint, jsonify, request

from onramp.domain.metadata import ManualConfirmation
from onramp.errors import FeatureDisabledError
from onramp.extensions import limiter
from onramp.schemas import PurchaseRequest, parse_request
from onramp.services.container import get_services
from onramp.utils.clock import isoformat, utcnow

logger = logging.getLogger(__name__)

transactions_bp = Blueprint("transactions", __name__, url_prefix="/transactions")


@transactions_bp.route("", methods=["POST"])
@limiter.limit("3 per 5 minutes")
def create_transaction():
    """Create a pending transaction and issue its virtual account."""
    services = get_services()
    payload = parse_request(PurchaseRequest, request.get_json(silent=True), limits=services.limits)
    return jsonify(services.checkout.open_purchase(payload)), 201


@transactions_bp.route("/<transaction_id>", methods=["GET"])
def get_transaction(transaction_id):
    tx = get_services().ledger.require(transaction_id)
    return jsonify(tx.to_dict())


@transactions_bp.route("/<transaction_id>/status", methods=["GET"])
def get_status(transaction_id):
    tx = get_services().ledger.require(transaction_id)
    return jsonify({
        "transactionId": tx.id,
        "status": tx.payment_status,
        "cryptoAmount": tx.crypto_amount,
        "transactionHash": tx.transaction_hash,
        "updatedAt": isoformat(tx.updated_at),
    })


@transactions_bp.route("/<transaction_id>/confirm", methods=["POST"])
def confirm_payment(transaction_id):
    """
    Mark a transaction as paid without a gateway callback.

    Returns 202 once the transfer is queued; poll the status endpoint for the outcome.
    """
    services = get_services()
    if not services.flags.MANUAL_CONFIRMATION:
        raise FeatureDisabledError("Manual payment confirmation is disabled")

    reference = services.trigger.on_payment_confirmed(
        transaction_id,
        ManualConfirmation(confirmed_at=isoformat(utcnow()), requested_by=request.remote_addr),
    )
    logger.info("Manual confirmation accepted", extra={"transaction_id": transaction_id})
    return jsonify({
        "message": "Payment confirmed",
        "transactionId": transaction_id,
        "paymentStatus": "paid",
        "paymentReference": reference,
    }), 202
