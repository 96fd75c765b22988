"""Fixed file names and document templates used by generated bundles.

The entry document hard-codes ``App.tsx`` and the ``window.App`` global, so
these names are part of the bundle contract and must not drift.
"""

import html
import json

APP_MODULE_PATH = "App.tsx"
ENTRY_DOCUMENT_PATH = "index.html"
MANIFEST_PATH = "package.json"
DEFAULT_STYLESHEET_PATH = "styles.css"

GLOBAL_COMPONENT_NAME = "App"
MOUNT_DELAY_MS = 100
ROOT_ELEMENT_ID = "root"

REACT_UMD_URL = "https://unpkg.com/react@18/umd/react.development.js"
REACT_DOM_UMD_URL = "https://unpkg.com/react-dom@18/umd/react-dom.development.js"
BABEL_STANDALONE_URL = "https://unpkg.com/@babel/standalone/babel.min.js"
TAILWIND_CDN_URL = "https://cdn.tailwindcss.com"

PLACEHOLDER_MESSAGE = "This component could not be generated. Please try again."


def global_binding(component: str, global_name: str = GLOBAL_COMPONENT_NAME) -> str:
    """Statement exposing a component to the entry document without a loader."""
    return f"window.{global_name} = {component};"


PLACEHOLDER_MODULE = f"""\
function App() {{
  return React.createElement('div', {{ className: 'p-8' }},
    React.createElement('h1', {{ className: 'text-2xl font-bold mb-4' }}, 'Generated App'),
    React.createElement('p', null, '{PLACEHOLDER_MESSAGE}')
  );
}}

{global_binding("App")}"""


def render_entry_document(
    title: str = "Generated App",
    stylesheets: list[str] | None = None,
    global_name: str = GLOBAL_COMPONENT_NAME,
) -> str:
    """Render the entry document that boots the merged application module.

    The view runtime and the in-browser compiler are loaded as globals, the
    module is compiled from ``App.tsx``, and after a short delay the bound
    component is mounted into the root element.

    Args:
        title: Page title
        stylesheets: Relative stylesheet paths to link, in order
        global_name: Global the application module binds its component to

    Returns:
        The complete HTML document.
    """
    links = "".join(
        f'\n    <link rel="stylesheet" href="./{path}">' for path in stylesheets or []
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <script src="{REACT_UMD_URL}"></script>
    <script src="{REACT_DOM_UMD_URL}"></script>
    <script src="{BABEL_STANDALONE_URL}"></script>
    <script src="{TAILWIND_CDN_URL}"></script>{links}
</head>
<body>
    <div id="{ROOT_ELEMENT_ID}"></div>
    <script type="text/babel" src="./{APP_MODULE_PATH}" data-type="module"></script>
    <script type="text/babel">
      const renderApp = () => {{
        const App = window.{global_name} || (() => React.createElement('div', null, 'Loading...'));
        const root = ReactDOM.createRoot(document.getElementById('{ROOT_ELEMENT_ID}'));
        root.render(React.createElement(App));
      }};

      setTimeout(renderApp, {MOUNT_DELAY_MS});
    </script>
</body>
</html>
"""


def render_plain_document(content: str, title: str = "Generated App") -> str:
    """Wrap arbitrary text in a standalone page as visible, escaped content."""
    body = content.strip() or "No content was generated."
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <style>
        body {{ margin: 0; padding: 20px; font-family: system-ui, -apple-system, sans-serif; }}
        pre {{ white-space: pre-wrap; word-wrap: break-word; }}
    </style>
</head>
<body>
    <pre>{html.escape(body)}</pre>
</body>
</html>
"""


def render_default_manifest(name: str = "generated-app") -> str:
    """Minimal package manifest for a bundle that ships an application module."""
    manifest = {
        "name": name.lower(),
        "version": "1.0.0",
        "private": True,
        "scripts": {
            "start": "serve -s build",
            "build": "react-scripts build",
            "dev": "react-scripts start",
        },
        "dependencies": {
            "react": "^18.2.0",
            "react-dom": "^18.2.0",
            "react-scripts": "5.0.1",
        },
        "browserslist": {
            "production": [">0.2%", "not dead", "not op_mini all"],
            "development": [
                "last 1 chrome version",
                "last 1 firefox version",
                "last 1 safari version",
            ],
        },
    }
    return json.dumps(manifest, indent=2) + "\n"
