"""AWS Signature Version 4 for single requests with a fully buffered body."""

import hashlib
import hmac
from datetime import datetime
from urllib.parse import quote, urlsplit

ALGORITHM = "AWS4-HMAC-SHA256"


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def sha256_hex(data: bytes | str) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def signing_key(secret_key: str, date_stamp: str, region: str, service: str) -> bytes:
    k_date = _hmac(("AWS4" + secret_key).encode("utf-8"), date_stamp)
    k_region = _hmac(k_date, region)
    k_service = _hmac(k_region, service)
    return _hmac(k_service, "aws4_request")


def canonical_request(
    method: str,
    path: str,
    query: str,
    headers: dict[str, str],
    payload_hash: str,
) -> tuple[str, str]:
    """Return (canonical request, signed header list). Header names are lower-cased and sorted."""
    normalized = {k.strip().lower(): " ".join(str(v).split()) for k, v in headers.items()}
    names = sorted(normalized)
    canonical_headers = "".join(f"{n}:{normalized[n]}\n" for n in names)
    signed_headers = ";".join(names)
    pairs = sorted(p.split("=", 1) if "=" in p else [p, ""] for p in query.split("&") if p)
    canonical_query = "&".join(f"{quote(k, safe='-_.~')}={quote(v, safe='-_.~')}" for k, v in pairs)
    canonical_path = quote(path or "/", safe="/-_.~")
    request = "\n".join([method.upper(), canonical_path, canonical_query, canonical_headers, signed_headers, payload_hash])
    return request, signed_headers


def string_to_sign(amz_date: str, credential_scope: str, canonical: str) -> str:
    return "\n".join([ALGORITHM, amz_date, credential_scope, sha256_hex(canonical)])


def sign_request(
    method: str,
    url: str,
    body: bytes | str,
    *,
    access_key: str,
    secret_key: str,
    region: str,
    service: str,
    now: datetime,
    content_type: str,
) -> dict[str, str]:
    """Headers to send: content-type, host, x-amz-date and Authorization."""
    parts = urlsplit(url)
    amz_date = now.strftime("%Y%m%dT%H%M%SZ")
    date_stamp = now.strftime("%Y%m%d")
    headers = {"content-type": content_type, "host": parts.netloc, "x-amz-date": amz_date}
    canonical, signed_headers = canonical_request(method, parts.path, parts.query, headers, sha256_hex(body))
    scope = f"{date_stamp}/{region}/{service}/aws4_request"
    signature = hmac.new(
        signing_key(secret_key, date_stamp, region, service),
        string_to_sign(amz_date, scope, canonical).encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    headers["Authorization"] = (
        f"{ALGORITHM} Credential={access_key}/{scope}, SignedHeaders={signed_headers}, Signature={signature}"
    )
    return headers
