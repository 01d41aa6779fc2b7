"""
Arcade Pipeline -- Sandbox Page Tests

The page is checked as text: correct script sources, embedded config,
and the message types the runtime understands.
"""

import json
import re

from engine.pipeline.messages import HOST_MESSAGE_TYPES, PROTOCOL_VERSION, SANDBOX_MESSAGE_TYPES, SANDBOX_READY
from engine.pipeline.sandbox_page import DEFAULT_REACT_DOM_URL, DEFAULT_REACT_URL, render_sandbox_page


def embedded_config(html):
    match = re.search(r"const SANDBOX_CONFIG = (.*);\n", html)
    return json.loads(match.group(1))


def test_loads_react_from_cdn_by_default():
    html = render_sandbox_page("ws://localhost:8000/ws/sandbox")
    assert f'src="{DEFAULT_REACT_URL}"' in html
    assert f'src="{DEFAULT_REACT_DOM_URL}"' in html


def test_bundle_replaces_cdn_scripts():
    html = render_sandbox_page("ws://x/ws/sandbox", bundle_url="/static/sandbox-bundle.js")
    assert 'src="/static/sandbox-bundle.js"' in html
    assert DEFAULT_REACT_URL not in html


def test_config_is_embedded():
    html = render_sandbox_page("ws://x/ws/sandbox", theme="dark")
    assert embedded_config(html) == {"wsUrl": "ws://x/ws/sandbox", "theme": "dark", "protocolVersion": PROTOCOL_VERSION}
    assert '<html lang="en" data-theme="dark">' in html


def test_config_cannot_close_the_script_element():
    html = render_sandbox_page("ws://x/</script><script>alert(1)</script>")
    assert "</script><script>alert(1)" not in html


def test_title_is_escaped():
    html = render_sandbox_page("ws://x", title="<b>Preview</b>")
    assert "<title>&lt;b&gt;Preview&lt;/b&gt;</title>" in html


def test_runtime_speaks_the_whole_protocol():
    html = render_sandbox_page("ws://x")
    assert f"'{SANDBOX_READY}'" in html
    for message_type in HOST_MESSAGE_TYPES | SANDBOX_MESSAGE_TYPES:
        assert message_type in html


def test_connection_token_is_sent_back_on_connect():
    html = render_sandbox_page("ws://x/ws/sandbox", token="abc123")
    assert embedded_config(html)["token"] == "abc123"
    assert "'token=' + encodeURIComponent(SANDBOX_CONFIG.token)" in html
    assert "protocolVersion: SANDBOX_CONFIG.protocolVersion" in html


def test_user_code_runs_in_its_own_scope():
    # A user `const Alert = ...` must shadow the injected component, not
    # collide with a parameter of the same name.
    html = render_sandbox_page("ws://x")
    assert "'return (function () {\\n' + logicCode" in html
    assert "Function.apply(null, ['React'].concat(scopeNames, [source]))" in html
