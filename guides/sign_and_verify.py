"""Simple example: issue a JWT and verify it with the issuer's key."""

import asyncio

from cryptography.hazmat.primitives.asymmetric import ec

from jwdoc import JWK, JWKSetCache, JWT


async def main():
    """Sign a token locally and check it in every serialization."""
    cache = JWKSetCache()
    key = await JWK.import_key(ec.generate_private_key(ec.SECP256R1()))

    token = await JWT.create(
        {"iss": "https://issuer.example", "sub": "alice"},
        key=key,
        cache=cache,
    )

    print(f"✅ Compact: {token.to_compact()}")
    print(f"📋 Flattened: {token.to_flattened()}")
    print(f"🔑 Signed with kid {key.kid}")

    public = JWK(key.public_dict())
    verified = await JWT.verify(token.to_general(), key=public, cache=cache)
    print(f"🔍 Verified from general JSON: {verified}")


if __name__ == "__main__":
    asyncio.run(main())
