"""
Core domain models for Podbean sign-in.

These models represent the authentication round trip and the provider
responses, independent of the HTTP host or the transport used to reach
Podbean.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

XML_SCHEMA_STRING = "http://www.w3.org/2001/XMLSchema#string"
NAME_IDENTIFIER_CLAIM = (
    "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/nameidentifier"
)
NAME_CLAIM = "http://schemas.xmlsoap.org/ws/2005/05/identity/claims/name"
ROLE_CLAIM = "http://schemas.microsoft.com/ws/2008/06/identity/claims/role"


# ============================================================================
# Authentication round trip
# ============================================================================


class AuthenticationProperties(BaseModel):
    """
    State carried across the redirect to Podbean and back.

    Holds the CSRF correlation id, the post-login redirect target and any
    extra items the caller attached to the challenge. Serialized and
    encrypted into the OAuth2 ``state`` parameter.
    """

    correlation_id: Optional[str] = Field(
        default=None, description="Anti-CSRF token bound to this challenge"
    )
    redirect_uri: Optional[str] = Field(
        default=None, description="Where to send the browser after sign-in"
    )
    items: dict[str, str] = Field(
        default_factory=dict, description="Caller-supplied extra properties"
    )

    model_config = ConfigDict(extra="forbid")


class Claim(BaseModel):
    """A single statement about the signed-in subject."""

    type: str
    value: str
    value_type: str = XML_SCHEMA_STRING
    issuer: Optional[str] = None


class ClaimsIdentity(BaseModel):
    """Identity handed to the host application after a successful sign-in."""

    authentication_type: str
    claims: list[Claim] = Field(default_factory=list)
    name_claim_type: str = NAME_CLAIM
    role_claim_type: str = ROLE_CLAIM

    def add_claim(self, claim: Claim) -> None:
        self.claims.append(claim)

    def find_first(self, claim_type: str) -> Optional[Claim]:
        """Return the first claim of the given type, if any."""
        for claim in self.claims:
            if claim.type == claim_type:
                return claim
        return None

    @property
    def name(self) -> Optional[str]:
        claim = self.find_first(self.name_claim_type)
        return claim.value if claim else None

    @property
    def name_identifier(self) -> Optional[str]:
        claim = self.find_first(NAME_IDENTIFIER_CLAIM)
        return claim.value if claim else None

    def with_authentication_type(self, authentication_type: str) -> "ClaimsIdentity":
        """Copy of this identity issued under a different authentication type."""
        return ClaimsIdentity(
            authentication_type=authentication_type,
            claims=[claim.model_copy() for claim in self.claims],
            name_claim_type=self.name_claim_type,
            role_claim_type=self.role_claim_type,
        )


class AuthenticationTicket(BaseModel):
    """
    Result of processing a callback.

    ``identity`` is None whenever the attempt failed (CSRF rejection,
    provider error); the properties are kept so the browser can still be
    sent back to where it came from.
    """

    identity: Optional[ClaimsIdentity] = None
    properties: AuthenticationProperties = Field(
        default_factory=AuthenticationProperties
    )


# ============================================================================
# Podbean API responses
# ============================================================================


class PodbeanToken(BaseModel):
    """Response body of the token endpoint."""

    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    # Kept as returned: Podbean sends either a number or a numeric string
    expires_in: Optional[str | int | float] = None
    token_type: Optional[str] = None
    scope: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class PodbeanPodcast(BaseModel):
    """The ``podcast`` object returned by the podcast endpoint."""

    id: Optional[str] = None
    name: Optional[str] = None
    title: Optional[str] = None
    desc: Optional[str] = None
    logo: Optional[str] = None
    website: Optional[str] = None
    category_name: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """Podbean ids may arrive as numbers."""
        if v is None:
            return v
        return str(v)

    @property
    def display_name(self) -> Optional[str]:
        """Name shown for the podcast, falling back to its title."""
        return self.name or self.title


class PodbeanPodcastResponse(BaseModel):
    """Envelope of the podcast endpoint."""

    podcast: Optional[PodbeanPodcast] = None

    model_config = ConfigDict(extra="allow")


class PodbeanDebugToken(BaseModel):
    """Response body of the token introspection endpoint."""

    podcast_id: Optional[str] = None
    client_id: Optional[str] = None
    expires_at: Optional[str | int | float] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("podcast_id", "client_id", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> Any:
        if v is None:
            return v
        return str(v)
