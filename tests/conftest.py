import json

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from jwdoc.keys import JWK, JWKSetCache

JKU = "http://example.com/jwks"


def make_key(kid: str, curve: ec.EllipticCurve | None = None) -> JWK:
    """Generate a private EC JWK with a fixed ``kid``."""
    private = ec.generate_private_key(curve or ec.SECP256R1())
    data = json.loads(jwt.algorithms.ECAlgorithm.to_jwk(private))
    data["kid"] = kid
    return JWK(data)


class KeySetEndpoint:
    """Serve JWK Set documents through ``httpx.MockTransport``."""

    def __init__(self):
        self.documents = {}
        self.requests = []

    def publish(self, url, *keys, **member_overrides):
        members = []
        for key in keys:
            member = key.public_dict()
            member.update(member_overrides)
            members.append(member)
        self.documents[url] = {"keys": members}

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        if url not in self.documents:
            return httpx.Response(404)
        return httpx.Response(200, json=self.documents[url])

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def endpoint():
    return KeySetEndpoint()


@pytest.fixture
def cache(endpoint):
    return JWKSetCache(client=endpoint.client())


@pytest.fixture
def signing_key():
    return make_key("signer-1")


@pytest.fixture
def other_key():
    return make_key("signer-2")


@pytest.fixture
def key_factory():
    return make_key
