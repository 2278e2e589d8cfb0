"""
Tests for domain models.
"""

import pytest
from pydantic import ValidationError

from podbean_auth.core.domain import (
    NAME_CLAIM,
    NAME_IDENTIFIER_CLAIM,
    AuthenticationProperties,
    Claim,
    ClaimsIdentity,
    PodbeanDebugToken,
    PodbeanPodcast,
    PodbeanToken,
)


@pytest.fixture
def identity():
    identity = ClaimsIdentity(authentication_type="Podbean")
    identity.add_claim(Claim(type=NAME_IDENTIFIER_CLAIM, value="42", issuer="Podbean"))
    identity.add_claim(Claim(type=NAME_CLAIM, value="My Show", issuer="Podbean"))
    return identity


class TestClaimsIdentity:
    """Tests for ClaimsIdentity."""

    def test_name_and_identifier(self, identity):
        assert identity.name == "My Show"
        assert identity.name_identifier == "42"

    def test_find_first_missing(self, identity):
        assert identity.find_first("urn:unknown") is None

    def test_empty_identity_has_no_name(self):
        identity = ClaimsIdentity(authentication_type="Podbean")

        assert identity.name is None
        assert identity.name_identifier is None

    def test_with_authentication_type_copies_claims(self, identity):
        copy = identity.with_authentication_type("Cookies")

        assert copy.authentication_type == "Cookies"
        assert copy.name == "My Show"
        assert copy.claims[0].issuer == "Podbean"
        copy.claims[0].value = "changed"
        assert identity.name_identifier == "42"

    def test_json_round_trip(self, identity):
        restored = ClaimsIdentity.model_validate(identity.model_dump(mode="json"))

        assert restored == identity


class TestAuthenticationProperties:
    """Tests for AuthenticationProperties."""

    def test_defaults(self):
        properties = AuthenticationProperties()

        assert properties.correlation_id is None
        assert properties.redirect_uri is None
        assert properties.items == {}

    def test_rejects_unknown_fields(self):
        with pytest.raises(ValidationError):
            AuthenticationProperties.model_validate({"unexpected": True})


class TestPodbeanResponses:
    """Tests for Podbean response schemas."""

    def test_token_keeps_extra_fields(self):
        token = PodbeanToken.model_validate(
            {"access_token": "T", "expires_in": "3600", "extra": "kept"}
        )

        assert token.expires_in == "3600"
        assert token.model_extra == {"extra": "kept"}

    def test_podcast_id_coerced_to_string(self):
        assert PodbeanPodcast.model_validate({"id": 7}).id == "7"

    def test_podcast_display_name_prefers_name(self):
        podcast = PodbeanPodcast(name="Name", title="Title")

        assert podcast.display_name == "Name"

    def test_debug_token_missing_podcast_id(self):
        assert PodbeanDebugToken.model_validate({}).podcast_id is None
