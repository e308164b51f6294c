from flask import Blueprint, jsonify

from onramp.domain.tokens import is_valid_wallet_address
from onramp.errors import ValidationError
from onramp.services.container import get_services
from onramp.utils.clock import isoformat
from onramp.utils.money import kobo_to_naira

history_bp = Blueprint("history", __name__)


@history_bp.route("/history/<wallet_address>", methods=["GET"])
def wallet_history(wallet_address):
    if not is_valid_wallet_address(wallet_address):
        raise ValidationError([{
            "field": "walletAddress",
            "message": "Wallet address must be 0x followed by 64 hexadecimal characters",
        }])

    transactions = get_services().ledger.list_by_wallet(wallet_address)
    return jsonify([
        {
            "id": tx.id,
            "tokenSymbol": tx.token_symbol,
            "amountFiatMinorUnits": tx.amount_fiat_minor,
            "amountNaira": kobo_to_naira(tx.amount_fiat_minor),
            "cryptoAmount": tx.crypto_amount,
            "status": tx.payment_status,
            "transactionHash": tx.transaction_hash,
            "createdAt": isoformat(tx.created_at),
        }
        for tx in transactions
    ])
