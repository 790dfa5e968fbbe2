# services/page_service.py
from html import escape

# Stand-in copy per variant; the real pages are built by the frontend.
VARIANT_HEADLINES = {
    "A": "Everyday essentials, delivered sustainably",
    "B": "Shop greener in minutes",
    "C": "The eco marketplace your home deserves",
    "D": "Join the waitlist for a cleaner cart",
}

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8">
    <title>{title}</title>
</head>
<body data-variant="{variant}">
    <main>
        <h1>{headline}</h1>
    </main>
    <script>
        fetch("/api/analytics", {{
            method: "POST",
            headers: {{"Content-Type": "application/json"}},
            body: JSON.stringify({{
                event: "page_view",
                variant: "{variant}",
                properties: {{variant: "{variant}"}},
                timestamp: Date.now()
            }})
        }}).catch(function (err) {{ console.error("Failed to track event:", err); }});
    </script>
</body>
</html>
"""


def render_landing_page(variant: str) -> str:
    """Renders the landing page markup for an already validated variant key."""
    safe_variant = escape(variant, quote=True)
    headline = VARIANT_HEADLINES.get(variant, "Welcome")
    return PAGE_TEMPLATE.format(
        title=f"Landing {safe_variant}",
        variant=safe_variant,
        headline=escape(headline),
    )
