import unittest

from path_setup import ensure_src_path

ensure_src_path()

from backends.errors import (
    FatalProviderError,
    GenerationFailed,
    PermanentModelError,
    ProviderErrorKind,
    ProviderExhausted,
    RetriableProviderError,
    classify_provider_error,
    is_rate_limited,
    wrap_provider_error,
)


class _StatusError(Exception):
    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ClassifyProviderErrorTests(unittest.TestCase):
    def test_status_codes_take_priority_over_message(self) -> None:
        cases = {
            404: ProviderErrorKind.MODEL_UNAVAILABLE,
            429: ProviderErrorKind.RATE_LIMITED,
            503: ProviderErrorKind.BUSY,
            500: ProviderErrorKind.TRANSIENT,
            408: ProviderErrorKind.TRANSIENT,
        }
        for status, expected in cases.items():
            with self.subTest(status=status):
                self.assertEqual(classify_provider_error(_StatusError("boom", status)), expected)

    def test_message_text_fallbacks(self) -> None:
        cases = {
            "models/gemini-1.0 is not found for API version": ProviderErrorKind.MODEL_UNAVAILABLE,
            "This model is deprecated": ProviderErrorKind.MODEL_UNAVAILABLE,
            "The model is overloaded due to high demand": ProviderErrorKind.BUSY,
            "429 RESOURCE_EXHAUSTED: Resource exhausted": ProviderErrorKind.RATE_LIMITED,
            "Too many requests": ProviderErrorKind.RATE_LIMITED,
            "Request timed out": ProviderErrorKind.TRANSIENT,
            "invalid request payload": ProviderErrorKind.FATAL,
        }
        for message, expected in cases.items():
            with self.subTest(message=message):
                self.assertEqual(classify_provider_error(RuntimeError(message)), expected)

    def test_builtin_timeout_is_transient(self) -> None:
        self.assertEqual(classify_provider_error(TimeoutError("slow")), ProviderErrorKind.TRANSIENT)

    def test_kind_properties(self) -> None:
        self.assertTrue(ProviderErrorKind.RATE_LIMITED.retriable)
        self.assertFalse(ProviderErrorKind.RATE_LIMITED.abandons_model)
        self.assertTrue(ProviderErrorKind.BUSY.abandons_model)
        self.assertTrue(ProviderErrorKind.EMPTY_RESPONSE.abandons_model)
        self.assertFalse(ProviderErrorKind.MODEL_UNAVAILABLE.retriable)
        self.assertFalse(ProviderErrorKind.FATAL.retriable)


class WrapProviderErrorTests(unittest.TestCase):
    def test_wraps_into_taxonomy_with_cell_attribution(self) -> None:
        permanent = wrap_provider_error(RuntimeError("not a valid model ID"), "model-x", 1)
        self.assertIsInstance(permanent, PermanentModelError)
        self.assertEqual((permanent.model, permanent.credential_index), ("model-x", 1))

        retriable = wrap_provider_error(RuntimeError("rate limit hit"), "model-x", 0)
        self.assertIsInstance(retriable, RetriableProviderError)
        self.assertEqual(retriable.kind, ProviderErrorKind.RATE_LIMITED)

        fatal = wrap_provider_error(ValueError("bad payload"), "model-x", 0)
        self.assertIsInstance(fatal, FatalProviderError)
        self.assertIn("ValueError", fatal.message)

    def test_existing_provider_errors_pass_through(self) -> None:
        original = PermanentModelError("gone", model="m", credential_index=0)
        self.assertIs(wrap_provider_error(original, "other", 3), original)


class RateLimitDetectionTests(unittest.TestCase):
    def test_exhaustion_and_generation_flags_are_respected(self) -> None:
        self.assertTrue(is_rate_limited(ProviderExhausted("all failed", rate_limited=True)))
        self.assertFalse(is_rate_limited(ProviderExhausted("all failed")))
        self.assertTrue(is_rate_limited(GenerationFailed("busy", rate_limited=True)))
        self.assertTrue(is_rate_limited(RuntimeError("429 too many requests")))
        self.assertFalse(is_rate_limited(None))

    def test_exhausted_inherits_last_error_kind(self) -> None:
        last = RetriableProviderError("limited", model="m", credential_index=1, kind=ProviderErrorKind.RATE_LIMITED)
        exhausted = ProviderExhausted("done", last_error=last, rate_limited=True)
        self.assertEqual(exhausted.kind, ProviderErrorKind.RATE_LIMITED)
        self.assertEqual(exhausted.model, "m")
        self.assertIs(exhausted.last_error, last)


if __name__ == "__main__":
    unittest.main()
