from app.main import redact_api_keys

GOOGLE_KEY = "AIza" + "x" * 35


def test_redact_query_key():
    event = {"url": "https://maps.googleapis.com/maps/api/distancematrix/json?origins=48.85,2.35&key=SECRET123"}
    out = redact_api_keys(None, None, event.copy())
    assert out["url"].endswith("key=REDACTED")
    assert "SECRET123" not in out["url"]


def test_redact_bare_google_key():
    out = redact_api_keys(None, None, {"error": f"Request denied for {GOOGLE_KEY}"})
    assert out["error"] == "Request denied for REDACTED"


def test_redact_token_in_list():
    event = {"links": ["https://maps.googleapis.com/maps/api/place/photo?photoreference=XYZ&key=SECRET123"]}
    out = redact_api_keys(None, None, event.copy())
    assert all("SECRET123" not in s for s in out["links"])


def test_redact_nested():
    event = {"a": {"b": ["foo", "https://...&key=SECRET123"]}}
    out = redact_api_keys(None, None, event.copy())
    assert out["a"]["b"] == ["foo", "https://...&key=REDACTED"]


def test_non_strings_untouched():
    out = redact_api_keys(None, None, {"status_code": 503, "retryable": True, "event": "planner_error"})
    assert out == {"status_code": 503, "retryable": True, "event": "planner_error"}
