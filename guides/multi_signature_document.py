"""Example of a JSON Web Document co-signed by two parties.

Both signers publish their keys at a JWK Set URL. A mock transport stands
in for the two key servers so the example runs offline.
"""

import asyncio
import json

import httpx
from cryptography.hazmat.primitives.asymmetric import ec

from jwdoc import JWD, JWK, JWKSetCache

BUYER_JKU = "https://buyer.example/.well-known/jwks.json"
SELLER_JKU = "https://seller.example/.well-known/jwks.json"


async def new_key(kid: str) -> JWK:
    key = await JWK.import_key(ec.generate_private_key(ec.SECP256R1()))
    return JWK({**key.to_dict(), "kid": kid})


async def main():
    buyer = await new_key("buyer-2024")
    seller = await new_key("seller-2024")
    published = {
        BUYER_JKU: {"keys": [buyer.public_dict()]},
        SELLER_JKU: {"keys": [seller.public_dict()]},
    }

    def key_server(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=published[str(request.url)])

    client = httpx.AsyncClient(transport=httpx.MockTransport(key_server))
    cache = JWKSetCache(client=client)

    # Buyer drafts and signs
    document = await JWD.create(
        {"order": "po-981", "amount": {"value": 1200, "currency": "EUR"}},
        key=buyer,
        protected={"jku": BUYER_JKU},
        cache=cache,
    )
    # Seller countersigns the same payload
    document = await document.add_signature(seller, protected={"jku": SELLER_JKU})

    text = document.serialize()
    print("📄 Document:")
    print(json.dumps(json.loads(text), indent=2))

    result = await JWD.verify(text, result="instance", cache=cache)
    print(f"🔍 Signatures: {result.signature_results}")
    print(f"✅ Document verified: {result.verified}")

    await client.aclose()


if __name__ == "__main__":
    asyncio.run(main())
