"""JSON Web Key wrapper around PyJWT's algorithm implementations."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import jwt
from jwt.algorithms import ECAlgorithm, HMACAlgorithm, OKPAlgorithm, RSAAlgorithm
from jwt.exceptions import PyJWTError
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed448, ed25519, rsa

from ..encoding import base64url_encode
from ..errors import DataError, KeyImportError

logger = logging.getLogger(__name__)

_EC_ALGORITHMS = {
    "P-256": "ES256",
    "P-384": "ES384",
    "P-521": "ES512",
    "secp256k1": "ES256K",
}

_RSA_ALGORITHMS = ("RS256", "RS384", "RS512", "PS256", "PS384", "PS512")
_HMAC_ALGORITHMS = ("HS256", "HS384", "HS512")

# RFC 7638 required members per key type
_THUMBPRINT_MEMBERS = {
    "EC": ("crv", "kty", "x", "y"),
    "RSA": ("e", "kty", "n"),
    "oct": ("k", "kty"),
    "OKP": ("crv", "kty", "x"),
}

_PRIVATE_MEMBERS = ("d", "p", "q", "dp", "dq", "qi", "oth", "k")

_PEM_MARKER = b"-----BEGIN"
_SSH_PREFIXES = (b"ssh-rsa", b"ssh-ed25519", b"ecdsa-sha2-")


def algorithms_for(data: Mapping[str, Any]) -> Tuple[str, ...]:
    """Algorithms a key of this type and curve can be used with."""
    kty = data.get("kty")
    if kty == "EC":
        crv = data.get("crv", "P-256")
        if crv not in _EC_ALGORITHMS:
            raise KeyImportError(f"Unsupported EC curve: {crv}")
        return (_EC_ALGORITHMS[crv],)
    if kty == "RSA":
        return _RSA_ALGORITHMS
    if kty == "oct":
        return _HMAC_ALGORITHMS
    if kty == "OKP":
        return ("EdDSA",)
    raise KeyImportError(f"Unsupported key type: {kty}")


def _load_key_text(material: bytes) -> Any:
    """Load PEM or OpenSSH key text into a ``cryptography`` key object."""
    try:
        if material.startswith(_SSH_PREFIXES):
            return serialization.load_ssh_public_key(material)
        if b"PRIVATE KEY" in material.split(b"\n", 1)[0]:
            return serialization.load_pem_private_key(material, password=None)
        return serialization.load_pem_public_key(material)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyImportError(f"Unable to load key text: {exc}") from exc


def _jwk_from_key_object(key: Any) -> Dict[str, Any]:
    """Export a ``cryptography`` key object, key text or HMAC secret as a JWK dict.

    PEM and OpenSSH text is loaded as the asymmetric key it encodes; it is
    never accepted as an HMAC secret.
    """
    if isinstance(key, str):
        key = key.encode("utf-8")
    if isinstance(key, bytes) and key.strip().startswith((_PEM_MARKER, *_SSH_PREFIXES)):
        key = _load_key_text(key.strip())

    if isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        exported = RSAAlgorithm.to_jwk(key)
    elif isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        exported = ECAlgorithm.to_jwk(key)
    elif isinstance(
        key,
        (
            ed25519.Ed25519PrivateKey,
            ed25519.Ed25519PublicKey,
            ed448.Ed448PrivateKey,
            ed448.Ed448PublicKey,
        ),
    ):
        exported = OKPAlgorithm.to_jwk(key)
    elif isinstance(key, bytes):
        try:
            secret = HMACAlgorithm(HMACAlgorithm.SHA256).prepare_key(key)
        except PyJWTError as exc:
            raise KeyImportError(f"Refusing to use key material as HMAC secret: {exc}") from exc
        exported = HMACAlgorithm.to_jwk(secret)
    else:
        raise KeyImportError(f"Cannot import key of type {type(key).__name__}")
    return json.loads(exported) if isinstance(exported, str) else dict(exported)


class JWK:
    """A single JSON Web Key able to sign and/or verify.

    The key knows which algorithm it is used with and how to describe
    itself in a protected header; signature production and checking are
    delegated to the matching ``jwt.algorithms`` implementation. A key
    that does not declare ``alg`` may be used with any algorithm of its
    type (see :meth:`for_algorithm`).
    """

    def __init__(self, data: Mapping[str, Any], algorithm: Optional[str] = None) -> None:
        if not isinstance(data, Mapping) or not data.get("kty"):
            raise KeyImportError("JWK must be a mapping with a 'kty' member")
        self._data: Dict[str, Any] = dict(data)
        family = algorithms_for(self._data)
        if algorithm is not None and algorithm not in family:
            # a hint from another key type never picks the algorithm
            logger.debug(f"Ignoring {algorithm} hint for {self.kty} key")
            algorithm = None
        self._alg: str = self._data.get("alg") or algorithm or family[0]
        try:
            pyjwk = jwt.PyJWK(self._data, algorithm=self._alg)
        except (PyJWTError, ValueError, TypeError, KeyError) as exc:
            raise KeyImportError(f"Unable to import JWK for {self._alg}: {exc}") from exc
        self._algorithm = pyjwk.Algorithm
        self._key = pyjwk.key

    def __repr__(self) -> str:
        return f"JWK(kty={self.kty!r}, alg={self.alg!r}, kid={self.kid!r})"

    # ------------------------------------------------------------------
    @classmethod
    async def import_key(cls, raw: Any, algorithm: Optional[str] = None) -> "JWK":
        """Turn raw key material into a :class:`JWK`.

        Accepts an existing ``JWK``, a JWK mapping, JWK JSON text, PEM or
        OpenSSH key text, a ``cryptography`` key object or an HMAC secret
        as bytes. ``algorithm`` is used only when the material does not
        declare its own ``alg`` and the algorithm suits the key type.
        """
        if isinstance(raw, JWK):
            return raw
        if isinstance(raw, (str, bytes)) and raw.strip()[:1] in ("{", b"{"):
            try:
                raw = json.loads(raw)
            except ValueError as exc:
                raise KeyImportError(f"Invalid JWK JSON: {exc}") from exc
        if isinstance(raw, Mapping):
            return cls(raw, algorithm)
        return cls(_jwk_from_key_object(raw), algorithm)

    def for_algorithm(self, alg: str) -> Optional["JWK"]:
        """Return a key usable with ``alg``, or ``None`` if this key is not.

        A declared ``alg`` must match exactly; otherwise any algorithm of
        the key's type is accepted.
        """
        if alg == self._alg:
            return self
        if self._data.get("alg") or alg not in algorithms_for(self._data):
            return None
        return JWK(self._data, algorithm=alg)

    # ------------------------------------------------------------------
    @property
    def kty(self) -> str:
        return self._data["kty"]

    @property
    def alg(self) -> str:
        return self._alg

    @property
    def kid(self) -> str:
        """Explicit ``kid`` or, when absent, the RFC 7638 thumbprint."""
        return self._data.get("kid") or self.thumbprint()

    @property
    def use(self) -> Optional[str]:
        return self._data.get("use")

    @property
    def key_ops(self) -> Optional[List[str]]:
        return self._data.get("key_ops")

    @property
    def is_private(self) -> bool:
        return self.kty == "oct" or "d" in self._data

    @property
    def can_verify(self) -> bool:
        if self.key_ops is not None:
            return "verify" in self.key_ops
        return self.use in (None, "sig")

    def thumbprint(self) -> str:
        members = _THUMBPRINT_MEMBERS.get(self.kty, ("kty",))
        required = {name: self._data[name] for name in members if name in self._data}
        digest = hashlib.sha256(
            json.dumps(required, separators=(",", ":"), sort_keys=True).encode("utf-8")
        ).digest()
        return base64url_encode(digest)

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)

    def public_dict(self) -> Dict[str, Any]:
        """Return the JWK without private members."""
        if self.kty == "oct":
            raise DataError("Symmetric keys have no public representation")
        data = {k: v for k, v in self._data.items() if k not in _PRIVATE_MEMBERS}
        data.setdefault("alg", self.alg)
        data.setdefault("kid", self.kid)
        if data.get("key_ops"):
            data["key_ops"] = ["verify"]
        return data

    # ------------------------------------------------------------------
    def materialize_protected_header(
        self, params: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """Build the protected header this key signs with.

        ``alg`` always comes from the key; ``kid`` defaults to the key id
        when the caller does not provide one.
        """
        params = dict(params or {})
        requested = params.pop("alg", None)
        if requested is not None and requested != self.alg:
            raise DataError(
                f"Header alg {requested!r} does not match key algorithm {self.alg!r}"
            )
        header: Dict[str, Any] = {"alg": self.alg}
        header.update(params)
        header.setdefault("kid", self.kid)
        return header

    async def sign(self, signing_input: bytes) -> bytes:
        if not self.is_private:
            raise DataError(f"JWK {self.kid} cannot produce a signature")
        if self.key_ops is not None and "sign" not in self.key_ops:
            raise DataError(f"JWK {self.kid} is not permitted to sign")
        return self._algorithm.sign(signing_input, self._key)

    async def verify(self, signing_input: bytes, signature: bytes) -> bool:
        key = self._key
        public_key = getattr(key, "public_key", None)
        if callable(public_key):
            key = public_key()
        try:
            return bool(self._algorithm.verify(signing_input, key, signature))
        except (PyJWTError, ValueError) as exc:
            logger.debug(f"Signature check with {self.kid} failed: {exc}")
            return False
