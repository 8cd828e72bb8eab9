def test_imports():
    """
    @brief
    Verifies that all core qppval modules are importable.

    @details
    Ensures package structure integrity and confirms that the model,
    dataloader and validator packages resolve without import errors.
    """
    import qppval
    import qppval.dataloader
    import qppval.model
    import qppval.validator

    # --- Assert ---
    assert all([qppval, qppval.dataloader, qppval.model, qppval.validator])
    assert qppval.__version__


def test_error_formatting():
    from qppval.errors import ConfigError, QppValError

    err = ConfigError("bad settings", source="loader", suggested_action="fix it")

    assert isinstance(err, QppValError)
    assert str(err) == "[ConfigError] bad settings (source=loader) | action: fix it"
    assert err.error_type == "ConfigError"
    assert err.timestamp
