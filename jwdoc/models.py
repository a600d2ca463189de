"""Typed views over JOSE headers and JWT claims sets."""

from __future__ import annotations

from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

NumericDate = Union[int, float]


class JOSEHeader(BaseModel):
    """JOSE header parameters.

    Registered parameters are typed; any other parameter is kept as an
    extension field so headers from newer producers survive a round trip.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    alg: Optional[str] = Field(default=None, description="Signing algorithm or 'none'")
    kid: Optional[str] = Field(default=None, description="Key identifier")
    jku: Optional[str] = Field(default=None, description="JWK Set URL")
    jwc: Optional[Union[str, List[str]]] = Field(
        default=None, description="Embedded credential or credential chain"
    )
    typ: Optional[str] = None
    cty: Optional[str] = None
    crit: Optional[List[str]] = None


class JWTClaims(BaseModel):
    """Registered JWT claims; private claims pass through untouched."""

    model_config = ConfigDict(extra="allow", frozen=True)

    iss: Optional[str] = None
    sub: Optional[str] = None
    aud: Optional[Union[str, List[str]]] = None
    exp: Optional[NumericDate] = None
    iat: Optional[NumericDate] = None
    nbf: Optional[NumericDate] = None
    jti: Optional[str] = None
