"""
Arcade Pipeline — Sandbox Runtime Page

Generates the HTML document that runs inside the isolated context.

The page loads React 18 (UMD via CDN, or the component-library bundle when
one is configured), opens a WebSocket back to the host, announces
SANDBOX_READY and then only ever acts on validated host messages:

  EXECUTE_CODE         evaluate the sanitized script, render `App` inside an
                       error boundary, reply RENDER_SUCCESS / COMPILE_ERROR /
                       RUNTIME_ERROR
  UPDATE_VIEWPORT      constrain the render root to a pixel width
  UPDATE_THEME         switch light/dark
  TOGGLE_INSPECT       hover highlighting + INSPECTION_DATA on pointer moves
  GET_INSPECTION_DATA  reply INSPECTION_DATA for a point (or null)

console.log/warn/error are forwarded as CONSOLE_LOG.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from engine.pipeline.messages import PROTOCOL_VERSION

DEFAULT_REACT_URL = "https://unpkg.com/react@18/umd/react.production.min.js"
DEFAULT_REACT_DOM_URL = "https://unpkg.com/react-dom@18/umd/react-dom.production.min.js"


def render_sandbox_page(
    ws_url: str,
    *,
    title: str = "Arcade Sandbox",
    react_url: str = DEFAULT_REACT_URL,
    react_dom_url: str = DEFAULT_REACT_DOM_URL,
    bundle_url: str | None = None,
    theme: Literal["light", "dark"] = "light",
    token: str | None = None,
) -> str:
    """
    Render the complete sandbox HTML page.

    Args:
        ws_url: WebSocket endpoint the page reports to (the host's sandbox channel)
        title: Page title
        react_url: React UMD build
        react_dom_url: ReactDOM UMD build
        bundle_url: Optional IIFE bundle exposing `window.sandboxBundle` with
            React, createRoot, Theme and the component/icon namespaces.
            When set, it replaces the React CDN scripts.
        theme: Initial theme until the host sends UPDATE_THEME
        token: One-time connection nonce, sent back as the `token` query
            parameter when the page opens its WebSocket

    Returns:
        Complete HTML string
    """
    config: dict[str, Any] = {"wsUrl": ws_url, "theme": theme, "protocolVersion": PROTOCOL_VERSION}
    if token:
        config["token"] = token

    if bundle_url:
        scripts = f'<script src="{_escape_html(bundle_url)}"></script>'
    else:
        scripts = (
            f'<script crossorigin src="{_escape_html(react_url)}"></script>\n'
            f'<script crossorigin src="{_escape_html(react_dom_url)}"></script>'
        )

    return f"""<!DOCTYPE html>
<html lang="en" data-theme="{theme}">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{_escape_html(title)}</title>
{scripts}
<style>
{SANDBOX_CSS}
</style>
</head>
<body>
<div id="sandbox-viewport"><div id="root"></div></div>
<div id="inspect-highlight" hidden></div>
<script>
const SANDBOX_CONFIG = {_embed_json(config)};

{SANDBOX_RUNTIME_JS}
</script>
</body>
</html>"""


def _escape_html(text: str) -> str:
    """HTML-escape text for safe embedding."""
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _embed_json(value: Any) -> str:
    """JSON safe to place inside a <script> element."""
    return json.dumps(value, ensure_ascii=False).replace("</", "<\\/")


# ─────────────────────────────────────────────────────────────────────────────
# CSS
# ─────────────────────────────────────────────────────────────────────────────

SANDBOX_CSS = """
*, *::before, *::after { box-sizing: border-box; }

html, body {
  margin: 0;
  padding: 0;
  min-height: 100%;
  font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
}

html[data-theme="light"] { color-scheme: light; background: #ffffff; color: #202733; }
html[data-theme="dark"]  { color-scheme: dark;  background: #0e151f; color: #dfe1e5; }

#sandbox-viewport {
  margin: 0 auto;
  padding: 16px;
  transition: max-width 0.15s ease-out;
}

body.inspect-mode, body.inspect-mode * { cursor: crosshair !important; }

#inspect-highlight {
  position: fixed;
  pointer-events: none;
  border: 2px solid #0067c5;
  background: rgba(0, 103, 197, 0.08);
  z-index: 2147483647;
}
"""


# ─────────────────────────────────────────────────────────────────────────────
# Runtime
# ─────────────────────────────────────────────────────────────────────────────

SANDBOX_RUNTIME_JS = r"""
(function () {
  'use strict';

  // ── Environment ─────────────────────────────────────────────────────────
  const bundle = window.sandboxBundle ? (window.sandboxBundle.default || window.sandboxBundle) : null;
  const React = bundle && bundle.React ? bundle.React : window.React;
  const createRoot = bundle && bundle.createRoot
    ? bundle.createRoot
    : (window.ReactDOM && window.ReactDOM.createRoot ? window.ReactDOM.createRoot.bind(window.ReactDOM) : null);
  const Theme = bundle && bundle.Theme ? bundle.Theme : null;

  const IDENT = /^[A-Za-z_$][\w$]*$/;
  const HOOKS = [
    'useState', 'useEffect', 'useLayoutEffect', 'useMemo', 'useCallback', 'useRef',
    'useContext', 'useReducer', 'useId', 'useTransition', 'useDeferredValue',
    'Fragment', 'createContext', 'forwardRef', 'memo',
  ];

  // Names the authored code may use without importing.
  const scope = {};
  if (bundle) {
    Object.assign(scope, bundle.AkselIcons || {}, bundle.AkselComponents || {});
  }
  HOOKS.forEach(function (name) { if (React && React[name]) scope[name] = React[name]; });
  const scopeNames = Object.keys(scope).filter(function (name) { return IDENT.test(name) && name !== 'React'; });
  const scopeValues = scopeNames.map(function (name) { return scope[name]; });

  const rootEl = document.getElementById('root');
  const viewportEl = document.getElementById('sandbox-viewport');
  const highlightEl = document.getElementById('inspect-highlight');
  const reactRoot = createRoot ? createRoot(rootEl) : null;

  let theme = SANDBOX_CONFIG.theme;
  let currentApp = null;
  let inspectEnabled = false;
  let renderGeneration = 0;

  // ── Channel ─────────────────────────────────────────────────────────────
  let socket = null;
  const outbox = [];

  function post(message) {
    let text;
    try {
      text = JSON.stringify(message);
    } catch (err) {
      return;
    }
    if (socket && socket.readyState === WebSocket.OPEN) {
      socket.send(text);
    } else {
      outbox.push(text);
    }
  }

  function connect() {
    let url = SANDBOX_CONFIG.wsUrl;
    if (SANDBOX_CONFIG.token) {
      url += (url.indexOf('?') === -1 ? '?' : '&') + 'token=' + encodeURIComponent(SANDBOX_CONFIG.token);
    }
    socket = new WebSocket(url);
    socket.addEventListener('open', function () {
      socket.send(JSON.stringify({ type: 'SANDBOX_READY', payload: { protocolVersion: SANDBOX_CONFIG.protocolVersion } }));
      while (outbox.length) socket.send(outbox.shift());
    });
    socket.addEventListener('message', function (event) {
      let data;
      try {
        data = JSON.parse(event.data);
      } catch (err) {
        return;
      }
      const message = validateHostMessage(data);
      if (message) dispatch(message);
    });
  }

  // ── Validation ──────────────────────────────────────────────────────────
  function isObject(value) { return value !== null && typeof value === 'object' && !Array.isArray(value); }
  function isNumber(value) { return typeof value === 'number' && isFinite(value); }

  const VALIDATORS = {
    EXECUTE_CODE: function (p) {
      return typeof p.markupCode === 'string' && (p.logicCode === undefined || typeof p.logicCode === 'string');
    },
    UPDATE_VIEWPORT: function (p) { return isNumber(p.width) && p.width > 0; },
    TOGGLE_INSPECT: function (p) { return typeof p.enabled === 'boolean'; },
    GET_INSPECTION_DATA: function (p) { return isNumber(p.x) && isNumber(p.y); },
    UPDATE_THEME: function (p) { return p.theme === 'light' || p.theme === 'dark'; },
  };

  function validateHostMessage(data) {
    if (!isObject(data) || typeof data.type !== 'string' || !('payload' in data)) return null;
    const check = VALIDATORS[data.type];
    if (!check || !isObject(data.payload) || !check(data.payload)) return null;
    return data;
  }

  function dispatch(message) {
    switch (message.type) {
      case 'EXECUTE_CODE': execute(message.payload.markupCode, message.payload.logicCode || ''); break;
      case 'UPDATE_VIEWPORT': viewportEl.style.maxWidth = message.payload.width + 'px'; break;
      case 'UPDATE_THEME': setTheme(message.payload.theme); break;
      case 'TOGGLE_INSPECT': setInspect(message.payload.enabled); break;
      case 'GET_INSPECTION_DATA':
        post({ type: 'INSPECTION_DATA', payload: inspectAt(message.payload.x, message.payload.y) });
        break;
    }
  }

  // ── Execution ───────────────────────────────────────────────────────────
  function errorTrace(err) {
    return err && err.stack ? String(err.stack) : String(err);
  }

  class ErrorBoundary extends React.Component {
    constructor(props) {
      super(props);
      this.state = { error: null };
    }
    static getDerivedStateFromError(error) {
      return { error: error };
    }
    componentDidCatch(error, info) {
      post({
        type: 'RUNTIME_ERROR',
        payload: {
          message: error && error.message ? error.message : String(error),
          componentStack: info && info.componentStack ? info.componentStack : null,
          rawTrace: errorTrace(error),
        },
      });
    }
    render() {
      return this.state.error ? null : this.props.children;
    }
  }

  function RenderReporter(props) {
    React.useEffect(function () {
      if (props.generation === renderGeneration) post({ type: 'RENDER_SUCCESS', payload: {} });
    }, [props.generation]);
    return props.children;
  }

  function execute(markupCode, logicCode) {
    if (!reactRoot) {
      post({ type: 'RUNTIME_ERROR', payload: { message: 'React failed to load', componentStack: null, rawTrace: '' } });
      return;
    }

    // Inner scope: user declarations may shadow the injected globals.
    const source = 'return (function () {\n' + logicCode + '\n' + markupCode +
      '\nreturn typeof App !== "undefined" ? App : null;\n})();';
    let factory;
    try {
      factory = Function.apply(null, ['React'].concat(scopeNames, [source]));
    } catch (err) {
      post({
        type: 'COMPILE_ERROR',
        payload: { message: err && err.message ? err.message : String(err), line: null, column: null, rawTrace: errorTrace(err) },
      });
      return;
    }

    let App;
    try {
      App = factory.apply(null, [React].concat(scopeValues));
    } catch (err) {
      post({
        type: 'RUNTIME_ERROR',
        payload: { message: err && err.message ? err.message : String(err), componentStack: null, rawTrace: errorTrace(err) },
      });
      return;
    }

    if (typeof App !== 'function' && !(App && typeof App === 'object' && App.$$typeof)) {
      post({
        type: 'RUNTIME_ERROR',
        payload: { message: 'No App component was defined', componentStack: null, rawTrace: '' },
      });
      return;
    }

    currentApp = App;
    render();
  }

  function render() {
    if (!currentApp) return;
    renderGeneration += 1;
    let tree = React.createElement(currentApp);
    if (Theme) tree = React.createElement(Theme, { theme: theme }, tree);
    tree = React.createElement(RenderReporter, { generation: renderGeneration }, tree);
    // A fresh key remounts the boundary so a previous error does not stick.
    reactRoot.render(React.createElement(ErrorBoundary, { key: renderGeneration }, tree));
  }

  function setTheme(next) {
    theme = next;
    document.documentElement.setAttribute('data-theme', next);
    render();
  }

  // ── Inspection ──────────────────────────────────────────────────────────
  function fiberOf(el) {
    for (const key in el) {
      if (key.indexOf('__reactFiber$') === 0 || key.indexOf('__reactInternalInstance$') === 0) return el[key];
    }
    return null;
  }

  function componentOf(fiber) {
    let node = fiber;
    while (node) {
      const type = node.type;
      if (type && typeof type !== 'string') {
        const name = type.displayName || type.name || (type.render && (type.render.displayName || type.render.name));
        if (name && name !== 'ErrorBoundary' && name !== 'RenderReporter') return { name: name, props: node.memoizedProps || {} };
      }
      node = node.return;
    }
    return null;
  }

  function sanitizeProps(props) {
    const clean = {};
    Object.keys(props || {}).forEach(function (key) {
      const value = props[key];
      if (key === 'children' || typeof value === 'function') return;
      try {
        JSON.stringify(value);
        clean[key] = value;
      } catch (err) {
        clean[key] = '[Non-serializable]';
      }
    });
    return clean;
  }

  function inspectAt(x, y) {
    const el = document.elementFromPoint(x, y);
    if (!el || !rootEl.contains(el) || el === rootEl) {
      highlightEl.hidden = true;
      return null;
    }
    const fiber = fiberOf(el);
    const component = fiber ? componentOf(fiber) : null;
    const style = window.getComputedStyle(el);
    const rect = el.getBoundingClientRect();
    const firstClass = typeof el.className === 'string' && el.className.trim() ? '.' + el.className.trim().split(/\s+/)[0] : '';

    highlightEl.style.left = rect.left + 'px';
    highlightEl.style.top = rect.top + 'px';
    highlightEl.style.width = rect.width + 'px';
    highlightEl.style.height = rect.height + 'px';
    highlightEl.hidden = !inspectEnabled;

    return {
      componentName: component ? component.name : el.tagName.toLowerCase(),
      tagName: el.tagName.toLowerCase(),
      cssClass: el.tagName.toLowerCase() + firstClass,
      props: component ? sanitizeProps(component.props) : {},
      color: style.color,
      fontFamily: style.fontFamily,
      fontSize: style.fontSize,
      margin: style.margin,
      padding: style.padding,
      boundingRect: rect.toJSON(),
      cursorX: x,
      cursorY: y,
    };
  }

  let pendingMove = null;
  function onPointerMove(event) {
    if (pendingMove) return;
    pendingMove = window.requestAnimationFrame(function () {
      pendingMove = null;
      if (inspectEnabled) post({ type: 'INSPECTION_DATA', payload: inspectAt(event.clientX, event.clientY) });
    });
  }

  function onPointerLeave() {
    highlightEl.hidden = true;
    if (inspectEnabled) post({ type: 'INSPECTION_DATA', payload: null });
  }

  function setInspect(enabled) {
    inspectEnabled = enabled;
    document.body.classList.toggle('inspect-mode', enabled);
    if (enabled) {
      document.addEventListener('mousemove', onPointerMove);
      document.addEventListener('mouseleave', onPointerLeave);
    } else {
      document.removeEventListener('mousemove', onPointerMove);
      document.removeEventListener('mouseleave', onPointerLeave);
      highlightEl.hidden = true;
    }
  }

  // ── Console forwarding ──────────────────────────────────────────────────
  function serializable(value) {
    if (value instanceof Error) return value.message;
    if (typeof value === 'function') return '[Function ' + (value.name || 'anonymous') + ']';
    try {
      JSON.stringify(value);
      return value === undefined ? 'undefined' : value;
    } catch (err) {
      return String(value);
    }
  }

  ['log', 'warn', 'error'].forEach(function (level) {
    const original = console[level].bind(console);
    console[level] = function () {
      const args = Array.prototype.slice.call(arguments);
      original.apply(null, args);
      post({ type: 'CONSOLE_LOG', payload: { level: level, args: args.map(serializable) } });
    };
  });

  window.addEventListener('error', function (event) {
    const err = event.error;
    post({
      type: 'RUNTIME_ERROR',
      payload: { message: err && err.message ? err.message : String(event.message), componentStack: null, rawTrace: errorTrace(err || event.message) },
    });
  });

  window.addEventListener('unhandledrejection', function (event) {
    const err = event.reason;
    post({
      type: 'RUNTIME_ERROR',
      payload: { message: err && err.message ? err.message : String(err), componentStack: null, rawTrace: errorTrace(err) },
    });
  });

  connect();
})();
"""
