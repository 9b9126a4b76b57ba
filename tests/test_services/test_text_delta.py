"""Tests for text delta reconciliation."""

from agentsidecar.services.text_delta import observe, reconcile


class TestReconcile:
    def test_extension_yields_suffix(self):
        assert reconcile("Hel", "Hello") == "lo"

    def test_rewrite_yields_full_text(self):
        assert reconcile("Hello", "Hi") == "Hi"

    def test_first_observation(self):
        assert reconcile("", "Hel") == "Hel"

    def test_repeat_yields_nothing(self):
        assert reconcile("Hello", "Hello") == ""


class TestObserve:
    def test_sequence_of_observations(self):
        buffers: dict[str, str] = {}
        deltas = [observe(buffers, "item-1", full) for full in ("Hel", "Hello", "Hi")]
        assert deltas == ["Hel", "lo", "Hi"]
        assert buffers == {"item-1": "Hi"}

    def test_keys_are_independent(self):
        buffers: dict[str, str] = {}
        observe(buffers, "a", "one")
        assert observe(buffers, "b", "two") == "two"
        assert observe(buffers, "a", "one more") == " more"
