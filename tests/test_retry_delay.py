from discogs_api import RetryConfig, retry_delay


def test_retry_delay_grows_exponentially():
    rc = RetryConfig(max_retries=3, base_delay=0.1, backoff_factor=2.0)
    assert retry_delay(rc, 0) == 0.1  # noqa: PLR2004
    assert retry_delay(rc, 1) == 0.2  # noqa: PLR2004
    assert retry_delay(rc, 2) == 0.4  # noqa: PLR2004


def test_retry_delay_defaults():
    rc = RetryConfig()
    assert retry_delay(rc, 0) == 2.0  # noqa: PLR2004
    assert retry_delay(rc, 1) == 5.4  # noqa: PLR2004


def test_retry_delay_rounds_to_whole_milliseconds():
    rc = RetryConfig(base_delay=0.001, backoff_factor=1.5)
    # 1.5ms rounds up, 2.25ms rounds down
    assert retry_delay(rc, 1) == 0.002  # noqa: PLR2004
    assert retry_delay(rc, 2) == 0.002  # noqa: PLR2004


def test_retry_delay_floor_is_one_millisecond():
    rc = RetryConfig(base_delay=0.0, backoff_factor=1.0)
    assert retry_delay(rc, 0) == 0.001  # noqa: PLR2004
    assert retry_delay(rc, 5) == 0.001  # noqa: PLR2004
