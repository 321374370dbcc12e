from ircclient.constants import _get_env_float, _get_env_int


def test_get_env_int_valid_positive_integer(monkeypatch):
    """Test parsing a valid positive integer from environment variable."""
    monkeypatch.setenv("TEST_VAR", "123")
    assert _get_env_int("TEST_VAR", 999) == 123


def test_get_env_int_invalid_string(monkeypatch, capsys):
    """Test handling of invalid string value in environment variable."""
    monkeypatch.setenv("TEST_VAR", "abc")
    assert _get_env_int("TEST_VAR", 999) == 999
    assert "Invalid integer value for TEST_VAR" in capsys.readouterr().out


def test_get_env_int_unset(monkeypatch):
    monkeypatch.delenv("TEST_VAR", raising=False)
    assert _get_env_int("TEST_VAR", 7) == 7


def test_get_env_int_float_string(monkeypatch):
    """Test handling of float string value in environment variable."""
    monkeypatch.setenv("TEST_VAR", "3.14")
    assert _get_env_int("TEST_VAR", 999) == 999


def test_get_env_float_valid(monkeypatch):
    monkeypatch.setenv("TEST_FLOAT", "0.25")
    assert _get_env_float("TEST_FLOAT", 2.0) == 0.25


def test_get_env_float_invalid(monkeypatch):
    monkeypatch.setenv("TEST_FLOAT", "soon")
    assert _get_env_float("TEST_FLOAT", 2.0) == 2.0
