"""Unit tests for the credential hasher."""

from identity_core.core.services.password_hasher import CredentialHasher


class TestCredentialHasher:
    """Test hashing and verification."""

    def test_hash_is_deterministic_for_a_salt(self, hasher: CredentialHasher):
        salt = hasher.generate_salt()

        assert hasher.hash("s3cret-pass", salt) == hasher.hash("s3cret-pass", salt)

    def test_hash_does_not_contain_plaintext(self, hasher: CredentialHasher):
        salt = hasher.generate_salt()

        assert "s3cret-pass" not in hasher.hash("s3cret-pass", salt)

    def test_different_salts_give_different_hashes(self, hasher: CredentialHasher):
        first = hasher.hash("s3cret-pass", hasher.generate_salt())
        second = hasher.hash("s3cret-pass", hasher.generate_salt())

        assert first != second

    def test_verify_accepts_matching_password(self, hasher: CredentialHasher):
        salt = hasher.generate_salt()
        hashed = hasher.hash("s3cret-pass", salt)

        assert hasher.verify("s3cret-pass", salt, hashed)

    def test_verify_rejects_wrong_password(self, hasher: CredentialHasher):
        salt = hasher.generate_salt()
        hashed = hasher.hash("s3cret-pass", salt)

        assert not hasher.verify("wrong-pass", salt, hashed)

    def test_verify_rejects_wrong_salt(self, hasher: CredentialHasher):
        hashed = hasher.hash("s3cret-pass", hasher.generate_salt())

        assert not hasher.verify("s3cret-pass", hasher.generate_salt(), hashed)

    def test_salt_carries_configured_cost(self):
        hasher = CredentialHasher(rounds=5)

        assert hasher.generate_salt().startswith("$2b$05$")
