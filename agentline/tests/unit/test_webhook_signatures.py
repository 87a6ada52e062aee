"""Unit tests for Retell webhook signature verification."""

import json

import pytest

from agentline.core.exceptions import SignatureVerificationError
from agentline.core.webhooks import compute_signature, verify_signature

SECRET = "key_test_retell"


class TestVerifySignature:
    """Test suite for verify_signature."""

    @pytest.fixture
    def body(self) -> bytes:
        return json.dumps(
            {"event": "call_analyzed", "call": {"call_id": "call_1", "agent_id": "agent_1"}},
            separators=(",", ":"),
        ).encode()

    def test_valid_signature_passes(self, body):
        """Test a signature computed over the exact body is accepted."""
        verify_signature(body, compute_signature(body, SECRET), SECRET)

    def test_tampered_body_is_rejected(self, body):
        """Test changing one byte of the body invalidates the signature."""
        signature = compute_signature(body, SECRET)
        tampered = body.replace(b"call_1", b"call_2")

        with pytest.raises(SignatureVerificationError, match="Invalid"):
            verify_signature(tampered, signature, SECRET)

    def test_reserialized_body_is_rejected(self, body):
        """Test re-encoding the parsed JSON with different spacing fails."""
        signature = compute_signature(body, SECRET)
        reserialized = json.dumps(json.loads(body)).encode()

        assert reserialized != body
        with pytest.raises(SignatureVerificationError):
            verify_signature(reserialized, signature, SECRET)

    def test_missing_signature_is_rejected(self, body):
        """Test an absent header is rejected before any digest is computed."""
        with pytest.raises(SignatureVerificationError, match="Missing"):
            verify_signature(body, None, SECRET)

    def test_wrong_secret_is_rejected(self, body):
        """Test a signature made with another key fails."""
        signature = compute_signature(body, "some-other-key")

        with pytest.raises(SignatureVerificationError):
            verify_signature(body, signature, SECRET)

    def test_unconfigured_secret_is_rejected(self, body):
        """Test an empty signing key never verifies anything."""
        with pytest.raises(SignatureVerificationError, match="not configured"):
            verify_signature(body, compute_signature(body, ""), "")

    def test_signature_error_maps_to_401(self):
        """Test the exception carries the unauthorized status."""
        assert SignatureVerificationError("x").status_code == 401
