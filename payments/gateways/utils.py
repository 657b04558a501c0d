from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


def get_request_param(request, name: str, default=None):
    """
    Read a parameter from a callback request.

    Gateways redirect the payer back with either a GET query string or a
    form POST, so both are checked (query string first).
    """
    if request is None:
        return default

    for source in ('GET', 'POST'):
        params = getattr(request, source, None)
        if params is not None and name in params:
            return params.get(name)
    return default


def get_client_ip(request) -> Optional[str]:
    if request is None:
        return None

    forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
    if forwarded:
        return forwarded.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR') or None


def add_query_params(url: str, **params) -> str:
    """Append query parameters to a URL, keeping any it already has"""
    scheme, netloc, path, query, fragment = urlsplit(url)
    pairs = [(k, v) for k, v in parse_qsl(query, keep_blank_values=True) if k not in params]
    pairs.extend((k, str(v)) for k, v in params.items())
    return urlunsplit((scheme, netloc, path, urlencode(pairs), fragment))


def mask_card_number(card_number) -> Optional[str]:
    """
    Mask a card number, keeping the first six and last four digits.

    Already masked values (e.g. ``502229******5995``) are returned as-is.
    """
    if not card_number:
        return None

    card_number = str(card_number).replace('-', '').replace(' ', '')
    if '*' in card_number or len(card_number) <= 10:
        return card_number
    return card_number[:6] + '*' * (len(card_number) - 10) + card_number[-4:]
