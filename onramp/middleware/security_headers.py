from flask import Response

TELEGRAM_ORIGINS = "https://web.telegram.org https://*.telegram.org"


def apply_security_headers(response: Response) -> Response:
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    response.headers["Strict-Transport-Security"] = "max-age=63072000; includeSubDomains"

    # The mini-app is rendered inside Telegram, so framing is restricted
    # to Telegram origins instead of denied outright.
    response.headers["Content-Security-Policy"] = (
        "default-src 'self'; "
        "connect-src 'self' https://api.coingecko.com; "
        f"frame-ancestors 'self' {TELEGRAM_ORIGINS};"
    )
    return response


def init_security_headers(app):
    app.after_request(apply_security_headers)
