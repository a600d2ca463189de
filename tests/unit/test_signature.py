import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from pydantic import ValidationError

from jwdoc.encoding import base64url_encode
from jwdoc.errors import (
    DataError,
    MissingAlgError,
    MissingCacheError,
    MissingKeyError,
    MissingPayloadError,
    UnresolvableKeyError,
)
from jwdoc.jose import JOSESignature

PAYLOAD = {"sub": "alice", "scope": "read"}
FAKE_SIGNATURE = base64url_encode(b"\x01" * 64)


def test_requires_protected_header(cache):
    with pytest.raises(DataError, match="JOSESignature must define protected header"):
        JOSESignature(signature=FAKE_SIGNATURE, cache=cache)


def test_requires_signature_unless_unsecured(cache):
    with pytest.raises(DataError, match="JOSESignature must define signature"):
        JOSESignature(protected={"alg": "ES256"}, cache=cache)


def test_unsecured_must_not_carry_signature():
    with pytest.raises(DataError, match="Unsecured JWS must not include signature"):
        JOSESignature(protected={"alg": "none"}, signature=FAKE_SIGNATURE)


def test_secured_signature_requires_cache():
    with pytest.raises(DataError, match="JOSESignature requires cache"):
        JOSESignature(protected={"alg": "ES256"}, signature=FAKE_SIGNATURE)


def test_rejects_non_base64url_signature(cache):
    with pytest.raises(DataError):
        JOSESignature(protected={"alg": "ES256"}, signature="not base64!", cache=cache)


@pytest.mark.asyncio
async def test_unsecured_signature_verifies():
    signature = JOSESignature(protected={"alg": "none"})
    assert signature.signature is None
    assert signature.to_descriptor() == {"protected": {"alg": "none"}, "signature": ""}
    assert await signature.verify(PAYLOAD) is True


def test_is_frozen_and_keeps_cache_private(cache):
    signature = JOSESignature(
        protected={"alg": "ES256"}, signature=FAKE_SIGNATURE, cache=cache, note="kept"
    )
    assert signature.cache is cache
    with pytest.raises(ValidationError):
        signature.signature = "AAAA"

    dumped = signature.model_dump()
    assert "cache" not in dumped and "_cache" not in dumped
    assert signature.to_descriptor() == {
        "protected": {"alg": "ES256"},
        "signature": FAKE_SIGNATURE,
        "note": "kept",
    }


def test_headers_are_detached_from_caller(cache):
    protected = {"alg": "ES256", "kid": "k1"}
    signature = JOSESignature(protected=protected, signature=FAKE_SIGNATURE, cache=cache)
    protected["kid"] = "changed"
    assert signature.protected_header["kid"] == "k1"


def test_header_overlays_protected_on_unprotected(cache):
    signature = JOSESignature(
        protected={"alg": "ES256", "kid": "k1"},
        header={"kid": "ignored", "trace": "t-1"},
        signature=FAKE_SIGNATURE,
        cache=cache,
    )
    assert signature.header == {"kid": "k1", "trace": "t-1", "alg": "ES256"}
    assert signature.params.kid == "k1"


@pytest.mark.asyncio
async def test_sign_checks_arguments_in_order(cache, signing_key):
    with pytest.raises(MissingPayloadError, match="Missing payload for JOSE Signature"):
        await JOSESignature.sign(cache=None, key=None)
    with pytest.raises(MissingCacheError, match="Missing JWKSetCache for JOSE Signature"):
        await JOSESignature.sign(payload=PAYLOAD, key=None)
    with pytest.raises(MissingKeyError, match="JOSE Signature requires JWK"):
        await JOSESignature.sign(payload=PAYLOAD, cache=cache)


@pytest.mark.asyncio
async def test_sign_then_verify(cache, signing_key):
    signature = await JOSESignature.sign(
        payload=PAYLOAD,
        protected_header_params={"typ": "JWT"},
        unprotected_header={"trace": "t-1"},
        cache=cache,
        key=signing_key,
    )
    assert signature.protected_header == {"alg": "ES256", "typ": "JWT", "kid": "signer-1"}
    assert signature.unprotected_header == {"trace": "t-1"}
    assert len(signature.signature_bytes) == 64

    assert await signature.verify(PAYLOAD, signing_key) is True
    assert await signature.verify({**PAYLOAD, "scope": "write"}, signing_key) is False


@pytest.mark.asyncio
async def test_verify_imports_raw_key_material(cache, signing_key):
    signature = await JOSESignature.sign(payload=PAYLOAD, cache=cache, key=signing_key)
    assert await signature.verify(PAYLOAD, signing_key.public_dict()) is True


@pytest.mark.asyncio
async def test_verify_rejects_key_for_other_algorithm(cache, signing_key, key_factory):
    signature = await JOSESignature.sign(payload=PAYLOAD, cache=cache, key=signing_key)
    assert await signature.verify(PAYLOAD, key_factory("p384", ec.SECP384R1())) is False


@pytest.mark.asyncio
async def test_verify_without_alg(cache):
    signature = JOSESignature(protected={"kid": "k1"}, signature=FAKE_SIGNATURE, cache=cache)
    with pytest.raises(MissingAlgError):
        await signature.verify(PAYLOAD)


@pytest.mark.asyncio
async def test_verify_without_key_reference(cache, signing_key):
    signature = await JOSESignature.sign(payload=PAYLOAD, cache=cache, key=signing_key)
    with pytest.raises(UnresolvableKeyError):
        await signature.verify(PAYLOAD)


@pytest.mark.asyncio
async def test_verify_resolves_kid_and_jku(endpoint, cache, signing_key):
    jku = "http://example.com/jwks"
    endpoint.publish(jku, signing_key)
    signature = await JOSESignature.sign(
        payload=PAYLOAD,
        protected_header_params={"jku": jku},
        cache=cache,
        key=signing_key,
    )
    assert await signature.verify(PAYLOAD) is True
    assert endpoint.requests == [jku]
