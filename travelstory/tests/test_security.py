import unittest
from datetime import datetime, timedelta, timezone

import jwt

from travelstory.errors import ConfigurationError, Unauthenticated, ValidationError
from travelstory.security import PasswordHasher, TokenCodec


class PasswordHasherTests(unittest.TestCase):
    def setUp(self):
        self.hasher = PasswordHasher(rounds=4)

    def test_hash_is_salted_and_verifiable(self):
        first = self.hasher.hash("correct horse")
        second = self.hasher.hash("correct horse")
        self.assertNotEqual(first, second)
        self.assertNotEqual(first, "correct horse")
        self.assertTrue(self.hasher.verify("correct horse", first))
        self.assertFalse(self.hasher.verify("battery staple", first))

    def test_default_cost_factor(self):
        self.assertTrue(PasswordHasher().hash("pw").startswith("$2b$10$"))

    def test_malformed_hash_does_not_verify(self):
        self.assertFalse(self.hasher.verify("pw", "not-a-bcrypt-hash"))

    def test_overlong_password_is_rejected(self):
        with self.assertRaises(ValidationError):
            self.hasher.hash("x" * 73)


class TokenCodecTests(unittest.TestCase):
    def setUp(self):
        self.codec = TokenCodec(secret="unit-secret")

    def test_issue_and_decode(self):
        now = datetime.now(timezone.utc)
        token = self.codec.issue("user-1", now=now)
        claims = self.codec.decode(token)
        self.assertEqual(claims.user_id, "user-1")
        self.assertEqual(claims.expires_at - claims.issued_at, 72 * 3600)

    def test_expired_token(self):
        token = self.codec.issue(
            "user-1", now=datetime.now(timezone.utc) - timedelta(hours=72, seconds=5)
        )
        with self.assertRaises(Unauthenticated) as ctx:
            self.codec.decode(token)
        self.assertEqual(ctx.exception.message, "Token has expired")

    def test_token_signed_with_other_secret(self):
        token = TokenCodec(secret="someone-else").issue("user-1")
        with self.assertRaises(Unauthenticated) as ctx:
            self.codec.decode(token)
        self.assertEqual(ctx.exception.message, "Invalid token")

    def test_token_without_expiry_is_rejected(self):
        token = jwt.encode({"sub": "user-1"}, "unit-secret", algorithm="HS256")
        with self.assertRaises(Unauthenticated):
            self.codec.decode(token)

    def test_secret_is_required(self):
        with self.assertRaises(ConfigurationError):
            TokenCodec(secret="")


if __name__ == "__main__":
    unittest.main()
