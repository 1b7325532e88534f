try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64
import json

import pytest

from activity_sync.models.oauth import TokenBundle
from activity_sync.services.token_codec import MalformedToken, TokenCodec


def _bundle(**extra) -> TokenBundle:
    return TokenBundle(
        access_token="access-abc",
        refresh_token="refresh-xyz",
        expires_at=1_900_000_000,
        **extra,
    )


@pytest.mark.parametrize("secret", [None, "cookie-secret"])
def test_token_codec_roundtrip(secret) -> None:
    codec = TokenCodec(secret=secret)
    bundle = _bundle(token_type="Bearer", athlete={"id": 7, "firstname": "Ada"})

    encoded = codec.encode(bundle)
    assert "access-abc" not in encoded

    decoded = codec.decode(encoded)
    assert decoded == bundle
    assert decoded.model_dump()["athlete"] == {"id": 7, "firstname": "Ada"}


def test_plain_cookie_is_base64_json() -> None:
    encoded = TokenCodec().encode(_bundle())

    payload = json.loads(base64.b64decode(encoded))
    assert payload == {
        "access_token": "access-abc",
        "refresh_token": "refresh-xyz",
        "expires_at": 1_900_000_000,
    }


@pytest.mark.parametrize(
    "value",
    [
        "not base64!",
        base64.b64encode(b"{not json").decode(),
        base64.b64encode(b'{"access_token": "only"}').decode(),
        base64.b64encode(b"[1, 2, 3]").decode(),
        "",
    ],
)
def test_token_codec_rejects_malformed_values(value: str) -> None:
    with pytest.raises(MalformedToken):
        TokenCodec().decode(value)


def test_encrypted_cookie_rejects_other_secret() -> None:
    encoded = TokenCodec(secret="one").encode(_bundle())

    with pytest.raises(MalformedToken):
        TokenCodec(secret="two").decode(encoded)
