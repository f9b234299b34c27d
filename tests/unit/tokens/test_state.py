"""Tests for the signed login state."""

from collections.abc import Callable

import pytest

from relay.crypto.keys import generate_rsa_keypair
from relay.crypto.signing import encode_token
from relay.crypto.types import KeyPair
from relay.errors import ValidationError
from relay.tokens import entity
from relay.tokens.state import State

REFERER = "http://test/dashboard?tab=1"


class TestCreate:
    """Tests for State.create and expiry."""

    def test_expiration_is_ttl_from_now(self) -> None:
        before = entity.now_ms()
        state = State.create(REFERER, 60)
        after = entity.now_ms()
        assert before + 60_000 <= state.expiration <= after + 60_000

    def test_negative_ttl_is_treated_as_positive(self) -> None:
        before = entity.now_ms()
        state = State.create(REFERER, -60)
        assert state.expiration >= before + 60_000
        assert not state.has_expired()

    def test_expires_after_ttl(self, advance_clock: Callable[[float], None]) -> None:
        state = State.create(REFERER, 30)
        assert not state.has_expired()
        advance_clock(31)
        assert state.has_expired()
        assert state.expires_in() < 0

    def test_expires_in_counts_down(
        self, advance_clock: Callable[[float], None]
    ) -> None:
        state = State.create(REFERER, 100)
        first = state.expires_in()
        advance_clock(40)
        assert state.expires_in() < first
        assert 58 <= state.expires_in() <= 60


class TestEncryptDecrypt:
    """Tests for the signed state round trip."""

    def test_roundtrip(self, key_pair: KeyPair) -> None:
        state = State.create(REFERER, 60)
        token = state.encrypt(key_pair.private_key)
        assert State.decrypt(token, key_pair.public_key) == state

    def test_decrypt_does_not_enforce_expiry(
        self, key_pair: KeyPair, advance_clock: Callable[[float], None]
    ) -> None:
        state = State.create(REFERER, 20)
        token = state.encrypt(key_pair.private_key)
        advance_clock(60)
        decoded = State.decrypt(token, key_pair.public_key)
        assert decoded.has_expired()

    def test_every_single_character_change_is_rejected(
        self, key_pair: KeyPair
    ) -> None:
        token = State.create(REFERER, 60).encrypt(key_pair.private_key)
        for i, char in enumerate(token):
            replacement = "A" if char != "A" else "B"
            altered = token[:i] + replacement + token[i + 1 :]
            with pytest.raises(ValidationError):
                State.decrypt(altered, key_pair.public_key)

    def test_state_from_another_server_is_rejected(self, key_pair: KeyPair) -> None:
        other = generate_rsa_keypair()
        token = State.create(REFERER, 60).encrypt(other.private_key)
        with pytest.raises(ValidationError):
            State.decrypt(token, key_pair.public_key)


class TestValidateClaims:
    """Tests for shape validation of decoded state."""

    def test_numeric_string_expiration_is_coerced(self) -> None:
        state = State.validate_claims({"referer": REFERER, "expiration": "12345"})
        assert state.expiration == 12345

    @pytest.mark.parametrize(
        "raw", ["12345.5", 12345.5, "1.2345e4", " 12345 ", 12345.0]
    )
    def test_fractional_and_exponent_expiration_is_truncated(self, raw: object) -> None:
        state = State.validate_claims({"referer": REFERER, "expiration": raw})
        assert state.expiration == 12345

    @pytest.mark.parametrize("raw", ["nan", "inf", float("-inf"), "", None, [1]])
    def test_non_finite_expiration_is_rejected(self, raw: object) -> None:
        with pytest.raises(ValidationError) as exc_info:
            State.validate_claims({"referer": REFERER, "expiration": raw})
        assert [e["loc"] for e in exc_info.value.errors] == [["expiration"]]

    def test_missing_referer_is_reported(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            State.validate_claims({"expiration": 12345})
        assert [e["loc"] for e in exc_info.value.errors] == [["referer"]]

    def test_every_bad_field_is_reported(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            State.validate_claims({"referer": 7, "expiration": "soon"})
        locs = sorted(e["loc"][0] for e in exc_info.value.errors)
        assert locs == ["expiration", "referer"]

    def test_signed_payload_of_wrong_shape_is_rejected(
        self, key_pair: KeyPair
    ) -> None:
        token = encode_token({"email": "x@example.com"}, key_pair.private_key)
        with pytest.raises(ValidationError, match="State"):
            State.decrypt(token, key_pair.public_key)


class TestExpirationFallback:
    """An entity without a usable expiration is given one day."""

    class _Bare:
        def __init__(self, expiration: object) -> None:
            self._expiration = expiration

        def to_json(self) -> dict[str, object]:
            return {"expiration": self._expiration}

    @pytest.mark.parametrize("raw", [None, 0, "", "never"])
    def test_unusable_expiration_falls_back_to_one_day(self, raw: object) -> None:
        before = entity.now_ms()
        resolved = entity.expiration_of(self._Bare(raw))
        assert resolved >= before + entity.FALLBACK_TTL_MS
        assert not entity.has_expired(self._Bare(raw))
