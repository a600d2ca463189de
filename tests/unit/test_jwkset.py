import json

import httpx
import pytest

from jwdoc.errors import DataError, KeySetFetchError
from jwdoc.keys import JWKSet, fetch_jwks

JKU = "http://example.com/jwks"


@pytest.mark.asyncio
async def test_import_skips_unusable_members(signing_key):
    jwks = await JWKSet.import_keys(
        {"keys": [{"kty": "XYZ", "kid": "bad"}, signing_key.public_dict()]}
    )
    assert len(jwks) == 1
    assert [key.kid for key in jwks] == ["signer-1"]


@pytest.mark.asyncio
async def test_import_from_json_text(signing_key, other_key):
    text = json.dumps({"keys": [signing_key.public_dict(), other_key.public_dict()]})
    jwks = await JWKSet.import_keys(text)
    assert jwks.find(lambda key: key.kid == "signer-2").kid == "signer-2"
    assert jwks.find(lambda key: key.kid == "missing") is None
    assert await JWKSet.import_keys(jwks) is jwks


@pytest.mark.asyncio
@pytest.mark.parametrize("source", ["{nope", {"no_keys": []}, {"keys": {}}, 7])
async def test_import_rejects_non_key_sets(source):
    with pytest.raises(DataError):
        await JWKSet.import_keys(source)


@pytest.mark.asyncio
async def test_import_from_url(endpoint, signing_key):
    endpoint.publish(JKU, signing_key)
    jwks = await JWKSet.import_keys(JKU, client=endpoint.client())
    assert [key.kid for key in jwks] == ["signer-1"]
    assert jwks.to_dict() == endpoint.documents[JKU]
    assert endpoint.requests == [JKU]


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [404, 410])
async def test_fetch_missing_document(status):
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(status))
    )
    with pytest.raises(KeySetFetchError) as excinfo:
        await fetch_jwks(JKU, client=client)
    assert excinfo.value.status_code == status
    assert excinfo.value.locator == JKU


@pytest.mark.asyncio
async def test_fetch_unreachable_host():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))
    with pytest.raises(KeySetFetchError) as excinfo:
        await fetch_jwks(JKU, client=client)
    assert excinfo.value.status_code is None


@pytest.mark.asyncio
async def test_fetch_server_error_propagates():
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(500))
    )
    with pytest.raises(httpx.HTTPStatusError):
        await fetch_jwks(JKU, client=client)


@pytest.mark.asyncio
async def test_fetch_rejects_non_json_body():
    client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
    )
    with pytest.raises(DataError):
        await fetch_jwks(JKU, client=client)
