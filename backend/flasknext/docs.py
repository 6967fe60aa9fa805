"""
Swagger UI shell for the generated document.
"""

from html import escape

from jinja2.utils import htmlsafe_json_dumps


SWAGGER_UI_VERSION = "5"

_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <title>{title} - API Documentation</title>
    <link rel="stylesheet" href="https://unpkg.com/swagger-ui-dist@{version}/swagger-ui.css">
</head>
<body>
    <div id="swagger-ui"></div>
    <script src="https://unpkg.com/swagger-ui-dist@{version}/swagger-ui-bundle.js"></script>
    <script>
        window.onload = function() {{
            SwaggerUIBundle({{
                url: {spec_url},
                dom_id: '#swagger-ui',
                presets: [
                    SwaggerUIBundle.presets.apis,
                    SwaggerUIBundle.presets.standalone
                ],
                layout: "BaseLayout",
                deepLinking: true
            }});
        }}
    </script>
</body>
</html>
"""


def swagger_ui_html(title: str, spec_path: str) -> str:
    """Render the viewer page pointing at spec_path."""
    return _TEMPLATE.format(
        title=escape(title),
        version=SWAGGER_UI_VERSION,
        spec_url=htmlsafe_json_dumps(spec_path),
    )
