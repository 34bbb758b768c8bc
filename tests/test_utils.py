from authcache.utils import key_fingerprint


class TestKeyFingerprint:
    def test_is_stable_and_short(self):
        assert key_fingerprint("ABC") == key_fingerprint("ABC")
        assert len(key_fingerprint("ABC")) == len("key-") + 12

    def test_does_not_contain_key(self):
        assert "secret-api-key" not in key_fingerprint("secret-api-key")

    def test_distinguishes_keys(self):
        assert key_fingerprint("ABC") != key_fingerprint("XYZ")
