"""Amazon CloudFront invalidations, signed with SigV4."""

import logging
import re
import uuid
from datetime import datetime, timedelta, timezone
from xml.sax.saxutils import escape

import requests

from apps.publisher.schemas.cdn import CloudFrontCdnConfig
from apps.publisher.services import aws_sigv4
from apps.publisher.services.cdn_base import (
    DEFAULT_TIMEOUT_SECONDS,
    PurgeResult,
    flush_estimate,
    request_failure,
    response_body,
)
from apps.publisher.services.config_validation import require_filled

logger = logging.getLogger(__name__)

API_HOST = "cloudfront.amazonaws.com"
API_VERSION = "2020-05-31"
SERVICE = "cloudfront"
CONTENT_TYPE = "application/xml"
CALLER_REFERENCE_PREFIX = "publisher"
FLUSH_DELAY = timedelta(minutes=5)
_ID_RE = re.compile(r"<Id>([^<]+)</Id>")


def invalidation_paths(urls: list[str]) -> list[str]:
    paths = [u.strip() for u in urls if u and u.strip()]
    if not paths or any(p == "/" or p.lower() == "root" for p in paths):
        return ["/*"]
    out: list[str] = []
    for p in paths:
        p = p if p.startswith("/") else "/" + p
        if p not in out:
            out.append(p)
    return out


def caller_reference(now: datetime) -> str:
    return f"{CALLER_REFERENCE_PREFIX}-{now.strftime('%Y%m%dT%H%M%SZ')}-{uuid.uuid4()}"


def invalidation_batch_xml(paths: list[str], reference: str) -> str:
    items = "".join(f"<Path>{escape(p)}</Path>" for p in paths)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<InvalidationBatch xmlns="http://cloudfront.amazonaws.com/doc/{API_VERSION}/">'
        f"<Paths><Quantity>{len(paths)}</Quantity><Items>{items}</Items></Paths>"
        f"<CallerReference>{escape(reference)}</CallerReference>"
        "</InvalidationBatch>"
    )


class CloudFrontDriver:
    provider_name = "CloudFront"

    def __init__(
        self,
        config: CloudFrontCdnConfig,
        *,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        require_filled(config, ("access_key_id", "secret_access_key", "distribution_id"), self.provider_name)
        self.config = config
        self._session = session or requests.Session()
        self._timeout = timeout

    def invalidation_url(self) -> str:
        return f"https://{API_HOST}/{API_VERSION}/distribution/{self.config.distribution_id}/invalidation"

    def purge(self, urls: list[str]) -> list[PurgeResult]:
        paths = invalidation_paths(urls)
        now = datetime.now(timezone.utc)
        body = invalidation_batch_xml(paths, caller_reference(now))
        url = self.invalidation_url()
        headers = aws_sigv4.sign_request(
            "POST",
            url,
            body,
            access_key=self.config.access_key_id,
            secret_key=self.config.secret_access_key,
            region=self.config.region or "us-east-1",
            service=SERVICE,
            now=now,
            content_type=CONTENT_TYPE,
        )
        try:
            resp = self._session.post(url, data=body.encode("utf-8"), headers=headers, timeout=self._timeout)
        except requests.RequestException as e:
            logger.warning("provider=%s invalidation request failed: %s", self.provider_name, e)
            return [request_failure(self.provider_name, e)]

        text = response_body(resp, limit=10000)
        if resp.ok:
            m = _ID_RE.search(text)
            invalidation_id = m.group(1) if m else ""
            logger.info("provider=%s paths=%d invalidation=%s", self.provider_name, len(paths), invalidation_id)
            return [
                PurgeResult(
                    provider_name=self.provider_name,
                    is_success=True,
                    status_code=resp.status_code,
                    operation_id=invalidation_id,
                    client_request_id=resp.headers.get("x-amz-request-id") or str(uuid.uuid4()),
                    reason="Created",
                    message=f"Invalidation created for {len(paths)} path(s)",
                    estimated_flush_at=flush_estimate(FLUSH_DELAY),
                )
            ]
        return [
            PurgeResult.failure(
                self.provider_name,
                resp.reason or "Invalidation Failed",
                f"CloudFront invalidation failed: {text}",
                resp.status_code,
            )
        ]

    def purge_all(self) -> list[PurgeResult]:
        return self.purge([])
