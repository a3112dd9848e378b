"""Tests for provider drivers. HTTP is a mocked requests.Session; no network."""

import re
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from apps.publisher.schemas.cdn import (
    AzureCdnConfig,
    CloudflareCdnConfig,
    CloudFrontCdnConfig,
    FastlyCdnConfig,
    SucuriCdnConfig,
)
from apps.publisher.services.cdn_azure import AzureCdnDriver, content_paths
from apps.publisher.services.cdn_cloudflare import CloudflareDriver
from apps.publisher.services.cdn_cloudfront import CloudFrontDriver, invalidation_batch_xml, invalidation_paths
from apps.publisher.services.cdn_fastly import FastlyDriver
from apps.publisher.services.cdn_sucuri import SucuriDriver
from apps.publisher.services.config_validation import CdnConfigError


def _response(status: int = 200, *, json_body=None, text: str = "", headers=None, reason: str = "OK") -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.ok = status < 400
    resp.reason = reason
    resp.text = text
    resp.headers = headers or {}
    if json_body is None:
        resp.json.side_effect = ValueError("no json")
    else:
        resp.json.return_value = json_body
    return resp


def _within(dt: datetime, delta: timedelta) -> bool:
    expected = datetime.now(timezone.utc) + delta
    return abs((dt - expected).total_seconds()) < 5


# --- Azure CDN / Front Door ---

AZURE = {
    "SubscriptionId": "sub",
    "ResourceGroup": "rg",
    "ProfileName": "prof",
    "EndpointName": "ep",
    "TenantId": "tid",
    "ClientId": "cid",
    "ClientSecret": "secret",
}


def _azure(http: MagicMock, front_door: bool = False) -> AzureCdnDriver:
    http.post.side_effect = [
        _response(200, json_body={"access_token": "tok", "expires_in": 3600}),
        _response(202, headers={"Azure-AsyncOperation": "https://management.azure.com/op/1"}, reason="Accepted"),
    ]
    return AzureCdnDriver(AzureCdnConfig.model_validate({**AZURE, "IsFrontDoor": front_door}), session=http)


def test_azure_150_paths_become_one_wildcard() -> None:
    http = MagicMock()
    results = _azure(http).purge([f"/page-{i}" for i in range(150)])

    assert len(results) == 1 and results[0].is_success
    purge_call = http.post.call_args_list[1]
    assert purge_call.kwargs["json"] == {"contentPaths": ["/*"]}
    assert http.post.call_count == 2


@pytest.mark.parametrize("paths", [["/", "/a"], ["root"], ["/a", "/*"], []])
def test_azure_root_or_wildcard_becomes_wildcard(paths) -> None:
    assert content_paths(paths) == ["/*"]


def test_azure_explicit_paths_and_operation_handle() -> None:
    http = MagicMock()
    driver = _azure(http)
    results = driver.purge(["/a", "b"])

    token_call, purge_call = http.post.call_args_list
    assert "login.microsoftonline.com/tid/oauth2/v2.0/token" in token_call.args[0]
    assert token_call.kwargs["data"]["grant_type"] == "client_credentials"
    assert purge_call.args[0].startswith(
        "https://management.azure.com/subscriptions/sub/resourceGroups/rg/providers/Microsoft.Cdn/profiles/prof/endpoints/ep/purge"
    )
    assert purge_call.kwargs["headers"]["Authorization"] == "Bearer tok"
    assert purge_call.kwargs["json"] == {"contentPaths": ["/a", "/b"]}
    assert results[0].operation_id == "https://management.azure.com/op/1"
    assert results[0].provider_name == "Azure CDN"
    assert _within(results[0].estimated_flush_at, timedelta(minutes=10))


def test_azure_front_door_uses_afd_endpoints() -> None:
    http = MagicMock()
    driver = _azure(http, front_door=True)
    driver.purge_all()
    assert "/afdEndpoints/ep/purge" in http.post.call_args_list[1].args[0]
    assert driver.provider_name == "Azure Front Door"


def test_azure_timeout_is_failed_result() -> None:
    http = MagicMock()
    http.post.side_effect = requests.Timeout("slow")
    results = AzureCdnDriver(AzureCdnConfig.model_validate(AZURE), session=http).purge(["/a"])
    assert not results[0].is_success and results[0].status_code == 408


def test_azure_malformed_token_reply_is_failed_result() -> None:
    http = MagicMock()
    http.post.return_value = _response(200, json_body=["nope"])
    results = AzureCdnDriver(AzureCdnConfig.model_validate(AZURE), session=http).purge(["/a"])

    assert len(results) == 1
    assert not results[0].is_success
    assert results[0].reason == "Token Error"
    assert http.post.call_count == 1


def test_azure_requires_credentials() -> None:
    with pytest.raises(CdnConfigError):
        AzureCdnDriver(AzureCdnConfig(), session=MagicMock())


# --- Cloudflare ---


def _cloudflare(http: MagicMock, site_url: str | None = None) -> CloudflareDriver:
    return CloudflareDriver(CloudflareCdnConfig(api_token="tok", zone_id="zone"), site_url=site_url, session=http)


@pytest.mark.parametrize("paths", [["/"], ["ROOT"], [], ["/a", "root"]])
def test_cloudflare_root_purges_everything(paths) -> None:
    http = MagicMock()
    http.post.return_value = _response(200, json_body={"success": True, "result": {"id": "p1"}, "errors": []})
    results = _cloudflare(http).purge(paths)
    assert http.post.call_args.kwargs["json"] == {"purge_everything": True}
    assert results[0].is_success and results[0].operation_id == "p1"


def test_cloudflare_files_absolute_with_site_url() -> None:
    http = MagicMock()
    http.post.return_value = _response(200, json_body={"success": True, "result": {"id": "p2"}})
    results = _cloudflare(http, "https://www.example.com/").purge(["/a", "b/c", "https://cdn.example.com/x"])

    assert http.post.call_args.args[0] == "https://api.cloudflare.com/client/v4/zones/zone/purge_cache"
    assert http.post.call_args.kwargs["headers"] == {"Authorization": "Bearer tok"}
    assert http.post.call_args.kwargs["json"] == {
        "files": ["https://www.example.com/a", "https://www.example.com/b/c", "https://cdn.example.com/x"]
    }
    assert _within(results[0].estimated_flush_at, timedelta(seconds=30))


def test_cloudflare_api_errors_joined() -> None:
    http = MagicMock()
    http.post.return_value = _response(
        400,
        json_body={"success": False, "errors": [{"message": "bad zone"}, {"message": "bad token"}]},
        reason="Bad Request",
    )
    result = _cloudflare(http).purge_all()[0]
    assert not result.is_success
    assert result.status_code == 400
    assert result.message == "bad zone; bad token"


def test_cloudflare_connection_error_is_failed_result() -> None:
    http = MagicMock()
    http.post.side_effect = requests.ConnectionError("refused")
    result = _cloudflare(http).purge(["/a"])[0]
    assert not result.is_success and result.status_code == 500


@pytest.mark.parametrize("body", [["upstream error"], "oops", {"success": False, "errors": "down", "result": []}])
def test_cloudflare_malformed_reply_is_failed_result(body) -> None:
    http = MagicMock()
    http.post.return_value = _response(200, json_body=body)
    results = _cloudflare(http).purge(["/a"])

    assert len(results) == 1
    assert not results[0].is_success
    assert results[0].provider_name == "Cloudflare"


# --- CloudFront ---


def _cloudfront(http: MagicMock) -> CloudFrontDriver:
    return CloudFrontDriver(
        CloudFrontCdnConfig(access_key_id="AKID", secret_access_key="secret", distribution_id="E123"), session=http
    )


def test_cloudfront_signed_invalidation() -> None:
    http = MagicMock()
    http.post.return_value = _response(
        201, text="<Invalidation><Id>I2J0I21PCUYOIK</Id><Status>InProgress</Status></Invalidation>", reason="Created"
    )
    results = _cloudfront(http).purge(["/a&b", "c"])

    url = http.post.call_args.args[0]
    body = http.post.call_args.kwargs["data"].decode("utf-8")
    headers = http.post.call_args.kwargs["headers"]
    assert url == "https://cloudfront.amazonaws.com/2020-05-31/distribution/E123/invalidation"
    assert "<Quantity>2</Quantity>" in body
    assert "<Path>/a&amp;b</Path><Path>/c</Path>" in body
    assert re.search(r"<CallerReference>publisher-\d{8}T\d{6}Z-[0-9a-f-]{36}</CallerReference>", body)
    assert headers["content-type"] == "application/xml"
    assert re.match(r"AWS4-HMAC-SHA256 Credential=AKID/\d{8}/us-east-1/cloudfront/aws4_request", headers["Authorization"])
    assert results[0].is_success and results[0].operation_id == "I2J0I21PCUYOIK"
    assert _within(results[0].estimated_flush_at, timedelta(minutes=5))


@pytest.mark.parametrize("paths", [[], ["/"], ["root"]])
def test_cloudfront_root_is_wildcard(paths) -> None:
    assert invalidation_paths(paths) == ["/*"]


def test_cloudfront_batch_xml_shape() -> None:
    xml = invalidation_batch_xml(["/*"], "ref-1")
    assert "<InvalidationBatch" in xml and "<Items><Path>/*</Path></Items>" in xml
    assert "<CallerReference>ref-1</CallerReference>" in xml


def test_cloudfront_http_error_is_failed_result() -> None:
    http = MagicMock()
    http.post.return_value = _response(403, text="<Error>AccessDenied</Error>", reason="Forbidden")
    result = _cloudfront(http).purge_all()[0]
    assert not result.is_success and result.status_code == 403
    assert "AccessDenied" in result.message


def test_cloudfront_timeout_is_408() -> None:
    http = MagicMock()
    http.post.side_effect = requests.Timeout()
    assert _cloudfront(http).purge(["/a"])[0].status_code == 408


# --- Fastly ---


def test_fastly_purge_verb_per_distinct_url() -> None:
    http = MagicMock()
    http.request.return_value = _response(200, json_body={"status": "ok", "id": "f-1"})
    driver = FastlyDriver(FastlyCdnConfig(service_id="svc", api_token="key", domain="www.example.com"), session=http)

    results = driver.purge(["/a", "/a", "/b"])

    assert [c.args for c in http.request.call_args_list] == [
        ("PURGE", "https://www.example.com/a"),
        ("PURGE", "https://www.example.com/b"),
    ]
    assert http.request.call_args.kwargs["headers"] == {"Fastly-Key": "key"}
    assert [r.operation_id for r in results] == ["f-1", "f-1"]
    assert _within(results[0].estimated_flush_at, timedelta(seconds=5))


def test_fastly_soft_purge_header() -> None:
    http = MagicMock()
    http.request.return_value = _response(200, json_body={"status": "ok"})
    FastlyDriver(
        FastlyCdnConfig(service_id="svc", api_token="key", domain="www.example.com", soft_purge=True), session=http
    ).purge(["/a"])
    assert http.request.call_args.kwargs["headers"]["Fastly-Soft-Purge"] == "1"


def test_fastly_purge_all_endpoint() -> None:
    http = MagicMock()
    http.post.return_value = _response(200, json_body={"status": "ok"})
    result = FastlyDriver(
        FastlyCdnConfig(service_id="svc", api_token="key", domain="www.example.com"), session=http
    ).purge_all()[0]
    assert http.post.call_args.args[0] == "https://api.fastly.com/service/svc/purge_all"
    assert result.is_success and "status: ok" in result.message


def test_fastly_empty_list_makes_no_calls() -> None:
    http = MagicMock()
    assert FastlyDriver(FastlyCdnConfig(service_id="s", api_token="k", domain="d"), session=http).purge([]) == []
    http.request.assert_not_called()


# --- Sucuri ---


def _sucuri(http: MagicMock) -> SucuriDriver:
    http.get.return_value = _response(200)
    return SucuriDriver(SucuriCdnConfig(api_key="k", api_secret="s"), session=http)


@pytest.mark.parametrize("paths", [[], ["/", "/a"], [f"/p{i}" for i in range(21)]])
def test_sucuri_clear_all_cases(paths) -> None:
    http = MagicMock()
    results = _sucuri(http).purge(paths)
    assert len(results) == 1
    assert http.get.call_args.kwargs["params"] == {"k": "k", "s": "s", "a": "clearcache"}
    assert _within(results[0].estimated_flush_at, timedelta(minutes=2))


def test_sucuri_per_file() -> None:
    http = MagicMock()
    results = _sucuri(http).purge(["/a", "/b"])
    assert [c.kwargs["params"].get("file") for c in http.get.call_args_list] == ["/a", "/b"]
    assert http.get.call_args.args[0] == "https://waf.sucuri.net/api"
    assert all(r.is_success for r in results)


def test_sucuri_incomplete_config_rejected_before_any_call() -> None:
    with pytest.raises(CdnConfigError):
        SucuriDriver(SucuriCdnConfig(), session=MagicMock())
