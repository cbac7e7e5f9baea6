"""
Tests for Apple identity token verification against a stubbed JWKS endpoint.
"""
import io
import json
import time
import urllib.error
import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm
from app.core.exceptions import InvalidCredential
from app.services.apple_auth import AppleTokenVerifier

CLIENT_ID = "com.skistat.app"
ISSUER = "https://appleid.apple.com"
KEYS_URL = "https://appleid.apple.com/auth/keys"


@pytest.fixture(scope="module")
def signing_key():
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    public_jwk = json.loads(RSAAlgorithm.to_jwk(private_key.public_key()))
    public_jwk.update({"kid": "key-1", "alg": "RS256", "use": "sig"})
    return private_pem, public_jwk


@pytest.fixture()
def jwks_endpoint(monkeypatch, signing_key):
    """Serve the public key set in place of Apple's endpoint; records each fetch."""
    _, public_jwk = signing_key
    calls = []

    def fake_urlopen(request, *args, **kwargs):
        calls.append(request.full_url)
        return io.BytesIO(json.dumps({"keys": [public_jwk]}).encode())

    monkeypatch.setattr("urllib.request.urlopen", fake_urlopen)
    return calls


def _verifier():
    return AppleTokenVerifier(client_id=CLIENT_ID, keys_url=KEYS_URL, issuer=ISSUER, cache_seconds=3600)


def _token(private_pem, kid="key-1", **overrides):
    claims = {
        "iss": ISSUER,
        "aud": CLIENT_ID,
        "sub": "001234.abcdef",
        "email": "skier@privaterelay.appleid.com",
        "iat": int(time.time()),
        "exp": int(time.time()) + 600,
    }
    claims.update(overrides)
    return jwt.encode(claims, private_pem, algorithm="RS256", headers={"kid": kid})


def test_verify_valid_token_and_cache_keys(signing_key, jwks_endpoint):
    private_pem, _ = signing_key
    verifier = _verifier()

    identity = verifier.verify(_token(private_pem))
    assert identity.sub == "001234.abcdef"
    assert identity.email == "skier@privaterelay.appleid.com"

    verifier.verify(_token(private_pem))
    assert jwks_endpoint == [KEYS_URL]


def test_wrong_audience_is_rejected(signing_key, jwks_endpoint):
    private_pem, _ = signing_key
    with pytest.raises(InvalidCredential):
        _verifier().verify(_token(private_pem, aud="com.other.app"))


def test_wrong_issuer_is_rejected(signing_key, jwks_endpoint):
    private_pem, _ = signing_key
    with pytest.raises(InvalidCredential):
        _verifier().verify(_token(private_pem, iss="https://evil.example.com"))


def test_expired_token_is_rejected(signing_key, jwks_endpoint):
    private_pem, _ = signing_key
    with pytest.raises(InvalidCredential):
        _verifier().verify(_token(private_pem, exp=int(time.time()) - 60))


def test_unknown_key_id_refetches_once(signing_key, jwks_endpoint):
    private_pem, _ = signing_key
    with pytest.raises(InvalidCredential):
        _verifier().verify(_token(private_pem, kid="rotated-away"))
    assert len(jwks_endpoint) == 2


def test_malformed_token_is_rejected(jwks_endpoint):
    with pytest.raises(InvalidCredential):
        _verifier().verify("not.a.jwt")


def test_unreachable_key_endpoint_is_an_invalid_credential(monkeypatch, signing_key):
    private_pem, _ = signing_key

    def unreachable(request, *args, **kwargs):
        raise urllib.error.URLError("connection refused")

    monkeypatch.setattr("urllib.request.urlopen", unreachable)
    with pytest.raises(InvalidCredential):
        _verifier().verify(_token(private_pem))
