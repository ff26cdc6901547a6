"""Constants: colors, local pages shown before the daemon UI is available."""

BG = "#080b14"
TEXT = "#eef3ff"
TEXT_DIM = "#9ba8c7"
ACCENT = "#25d0ff"
RED = "#ff6b7a"

_PAGE = """<!doctype html>
<html>
<head><meta charset="utf-8"><title>{title}</title></head>
<body style="margin:0;height:100vh;display:flex;align-items:center;justify-content:center;
             background:{bg};color:{text};font-family:-apple-system,'Segoe UI',sans-serif">
  <div style="text-align:center">
    <h2 style="color:{accent};font-weight:600">{heading}</h2>
    <p style="color:{dim}">{body}</p>
  </div>
</body>
</html>
"""

LOADING_HTML = _PAGE.format(
    title="Starting", bg=BG, text=TEXT, accent=ACCENT, dim=TEXT_DIM,
    heading="Starting daemon", body="Waiting for the local service to become available&hellip;",
)


def error_html(message: str) -> str:
    """Page shown when the bootstrap cannot continue. ``message`` must be escaped."""
    return _PAGE.format(
        title="Error", bg=BG, text=TEXT, accent=RED, dim=TEXT_DIM,
        heading="Unable to start", body=message,
    )
