from engine.pipeline.viewports import DEFAULT_VIEWPORT_ID, DEFAULT_VIEWPORT_WIDTH, VIEWPORTS, viewport_width


def test_breakpoints():
    assert [(v.id, v.width) for v in VIEWPORTS] == [
        ("2XL", 1440),
        ("XL", 1280),
        ("LG", 1024),
        ("MD", 768),
        ("SM", 480),
        ("XS", 320),
    ]


def test_lookup_is_case_insensitive():
    assert viewport_width("sm") == 480


def test_unknown_falls_back_to_md():
    assert viewport_width("watch") == DEFAULT_VIEWPORT_WIDTH == 768


def test_default_width_follows_default_breakpoint():
    assert viewport_width(DEFAULT_VIEWPORT_ID) == DEFAULT_VIEWPORT_WIDTH
