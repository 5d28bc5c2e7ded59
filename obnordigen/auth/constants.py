"""Nordigen auth constants."""

TOKEN_NEW_PATH = "token/new/"
TOKEN_REFRESH_PATH = "token/refresh/"
REQUISITIONS_PATH = "requisitions/"

# The callback address doubles as the redirect registered with each requisition.
CALLBACK_HOST = "127.0.0.1"
CALLBACK_PORT = 1337
DEFAULT_USER_LANGUAGE = "EN"

TOKEN_FILENAME = "token.json"
BANK_STATE_FILENAME = "bank.json"

THANK_YOU_HTML = (
    "<html>\r\n"
    "<body>\r\n"
    "<h2>Thank You!</h2>\r\n"
    "<p>You can now go back to the tool :)</p>\r\n"
    "</body>\r\n"
    "</html>\r\n"
)
THANK_YOU_RESPONSE = (
    "HTTP/1.1 200 OK\r\n"
    "Content-Type: text/html; charset=UTF-8\r\n"
    "\r\n"
    + THANK_YOU_HTML
).encode("utf-8")


def redirect_url(host: str = CALLBACK_HOST, port: int = CALLBACK_PORT) -> str:
    return f"http://{host}:{port}"
