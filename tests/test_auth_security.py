import base64
import json
import unittest

import jwt

from eventsync.core.usecases.tokens import AuthError, AuthErrorKind, issue_access_token, verify_token

SECRET = "unit-test-secret-with-enough-bytes-for-hs256"
NOW = 1_700_000_000


def _b64(data: dict) -> str:
    raw = json.dumps(data).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


class TokenVerifierTests(unittest.TestCase):
    def _kind(self, token, **kwargs) -> AuthErrorKind:
        with self.assertRaises(AuthError) as ctx:
            verify_token(token, secret=kwargs.pop("secret", SECRET), **kwargs)
        return ctx.exception.kind

    def test_token_roundtrip(self):
        token = issue_access_token(subject="alice", secret=SECRET, ttl_minutes=5, claims={"name": "Alice"}, now=NOW)
        identity = verify_token(token, secret=SECRET, now=NOW + 10)
        self.assertEqual(identity.subject, "alice")
        self.assertEqual(identity.claims["name"], "Alice")
        self.assertEqual(identity.claims["exp"], NOW + 300)

    def test_missing_credential(self):
        self.assertEqual(self._kind(None), AuthErrorKind.MISSING)
        self.assertEqual(self._kind(""), AuthErrorKind.MISSING)
        self.assertEqual(self._kind("   "), AuthErrorKind.MISSING)

    def test_malformed_credential(self):
        self.assertEqual(self._kind("not-a-jwt"), AuthErrorKind.MALFORMED)
        self.assertEqual(self._kind("a.b.c"), AuthErrorKind.MALFORMED)

    def test_missing_subject_or_expiry_is_malformed(self):
        no_sub = jwt.encode({"exp": NOW + 60}, SECRET, algorithm="HS256")
        no_exp = jwt.encode({"sub": "alice"}, SECRET, algorithm="HS256")
        self.assertEqual(self._kind(no_sub, now=NOW), AuthErrorKind.MALFORMED)
        self.assertEqual(self._kind(no_exp, now=NOW), AuthErrorKind.MALFORMED)

    def test_wrong_secret_is_invalid_signature(self):
        token = issue_access_token(subject="alice", secret="some-other-secret-also-long-enough!!", now=NOW)
        self.assertEqual(self._kind(token, now=NOW), AuthErrorKind.INVALID_SIGNATURE)

    def test_unsigned_token_is_rejected(self):
        header = _b64({"alg": "none", "typ": "JWT"})
        body = _b64({"sub": "mallory", "exp": NOW + 60})
        self.assertEqual(self._kind(f"{header}.{body}.", now=NOW), AuthErrorKind.INVALID_SIGNATURE)

    def test_expired_token_reports_expired(self):
        token = issue_access_token(subject="alice", secret=SECRET, ttl_minutes=1, now=NOW)
        self.assertEqual(self._kind(token, now=NOW + 61), AuthErrorKind.EXPIRED)
        self.assertEqual(self._kind(token, now=NOW + 60), AuthErrorKind.EXPIRED)

    def test_forged_expired_token_reports_signature_first(self):
        token = issue_access_token(subject="alice", secret="some-other-secret-also-long-enough!!", now=NOW)
        self.assertEqual(self._kind(token, now=NOW + 10_000), AuthErrorKind.INVALID_SIGNATURE)

    def test_verification_is_deterministic(self):
        good = issue_access_token(subject="bob", secret=SECRET, now=NOW)
        for _ in range(3):
            self.assertEqual(verify_token(good, secret=SECRET, now=NOW + 1).subject, "bob")
            self.assertEqual(self._kind(good, now=NOW + 3601), AuthErrorKind.EXPIRED)
            self.assertEqual(self._kind("garbage"), AuthErrorKind.MALFORMED)

    def test_reserved_claims_cannot_be_overridden(self):
        token = issue_access_token(subject="alice", secret=SECRET, claims={"sub": "root", "exp": 1}, now=NOW)
        identity = verify_token(token, secret=SECRET, now=NOW)
        self.assertEqual(identity.subject, "alice")
