"""
Shared HTML layout and styling helpers.
"""
from __future__ import annotations

from html import escape

from fastapi.responses import HTMLResponse

from app.auth_utils import ANONYMOUS, SessionContext

SITE_NAME = "Työmaat.fi"


def esc(value) -> str:
    """HTML-escape any value; None renders as ''."""
    return escape("" if value is None else str(value), quote=True)


def nav_links(ctx: SessionContext) -> str:
    links = ['<a href="/projects">🏗️ Työmaat</a>']
    if ctx.signed_in:
        links.append('<a href="/watchlists">🔔 Hakuvahdit</a>')
    if ctx.is_admin:
        links.append('<a href="/dashboard">🛠️ Dashboard</a>')
    if ctx.signed_in:
        links.append('<a href="/logout">Kirjaudu ulos</a>')
    else:
        links.append('<a href="/login">Kirjaudu</a>')
    return "\n              ".join(links)


def render_page(
    title: str,
    body: str,
    ctx: SessionContext | None = None,
    *,
    head_extra: str = "",
    status_code: int = 200,
) -> HTMLResponse:
    """
    Shared layout: dark background, nav bar, and 'signed in as' line.
    `head_extra` is injected into <head> (map pages load Leaflet there).
    """
    ctx = ctx or ANONYMOUS
    if ctx.signed_in:
        signed_in_text = f"Kirjautunut: <strong>{esc(ctx.email)}</strong>"
    else:
        signed_in_text = "Et ole kirjautunut"

    html = f"""
    <!DOCTYPE html>
    <html lang="fi">
      <head>
        <meta charset="utf-8" />
        <meta name="viewport" content="width=device-width, initial-scale=1" />
        <title>{esc(title)} – {SITE_NAME}</title>
        {head_extra}
        <style>
          :root {{
            color-scheme: dark;
          }}
          * {{
            box-sizing: border-box;
          }}
          body {{
            font-family: system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
            margin: 0;
            padding: 0;
            background: #020617;
            color: #e5e7eb;
          }}
          .page {{
            max-width: 1200px;
            margin: 0 auto;
            padding: 1.5rem 1rem 3rem;
          }}
          header {{
            display: flex;
            justify-content: space-between;
            align-items: center;
            flex-wrap: wrap;
            gap: 0.75rem;
            margin-bottom: 1.5rem;
            padding: 0.75rem 1rem;
            background: linear-gradient(90deg, rgba(251,191,36,0.08), rgba(34,197,94,0.08));
            border: 1px solid #1f2937;
            border-radius: 0.75rem;
          }}
          header h1 {{
            font-size: 1.4rem;
            margin: 0;
          }}
          nav {{
            display: flex;
            gap: 0.6rem;
            align-items: center;
            flex-wrap: wrap;
          }}
          nav a {{
            text-decoration: none;
            color: #e5e7eb;
            font-size: 0.95rem;
            display: inline-block;
            padding: 6px 10px;
            border-radius: 8px;
            background: rgba(255,255,255,0.04);
            border: 1px solid transparent;
          }}
          nav a:hover {{
            color: #fbbf24;
            border-color: #1f2937;
          }}
          .signed-in {{
            font-size: 0.8rem;
            color: #9ca3af;
            margin-top: 0.25rem;
          }}
          a {{
            color: #38bdf8;
          }}
          .card {{
            background: #020617;
            border-radius: 0.75rem;
            border: 1px solid #1f2937;
            padding: 1rem 1.25rem;
            margin-bottom: 1rem;
            box-shadow: 0 10px 30px rgba(15, 23, 42, 0.5);
          }}
          .form-card {{
            max-width: 760px;
            margin: 0 auto 1rem;
          }}
          label {{
            display: block;
            margin-top: 0.75rem;
            font-size: 0.9rem;
          }}
          input:not([type="checkbox"]):not([type="radio"]), select, textarea {{
            width: 100%;
            padding: 0.5rem;
            margin-top: 0.25rem;
            border-radius: 0.375rem;
            border: 1px solid #4b5563;
            background: #020617;
            color: #e5e7eb;
          }}
          input[type="checkbox"] {{
            width: auto;
            accent-color: #22c55e;
          }}
          button {{
            margin-top: 1rem;
            padding: 0.6rem 1.2rem;
            border-radius: 0.5rem;
            border: none;
            background: #22c55e;
            color: #022c22;
            font-weight: 600;
            cursor: pointer;
          }}
          button:hover {{
            background: #16a34a;
          }}
          button.small {{
            margin-top: 0;
            padding: 0.3rem 0.6rem;
            font-size: 0.8rem;
          }}
          button.danger {{
            background: #f87171;
            color: #111827;
          }}
          button.muted-btn {{
            background: #374151;
            color: #e5e7eb;
          }}
          .inline-form {{
            display: inline;
          }}
          table {{
            width: 100%;
            border-collapse: collapse;
            margin-top: 1rem;
            font-size: 0.9rem;
          }}
          th, td {{
            border: 1px solid #1f2937;
            padding: 0.4rem 0.6rem;
            vertical-align: top;
          }}
          th {{
            background: #111827;
            text-align: left;
          }}
          .muted {{
            color: #9ca3af;
            font-size: 0.85rem;
          }}
          .error {{
            color: #f97373;
          }}
          .notice {{
            color: #fbbf24;
          }}
          .stats {{
            display: flex;
            gap: 0.75rem;
            margin-bottom: 1rem;
            flex-wrap: wrap;
          }}
          .stat {{
            flex: 0 0 160px;
            padding: 0.6rem 0.8rem;
            border-radius: 0.75rem;
            border: 1px solid #1f2937;
          }}
          .stat .label {{
            font-size: 0.75rem;
            color: #9ca3af;
          }}
          .stat .value {{
            font-size: 1.2rem;
            font-weight: 600;
          }}
          .grid {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(180px, 1fr));
            gap: 0 0.75rem;
          }}
          .badge {{
            display: inline-block;
            font-size: 0.75rem;
            padding: 2px 8px;
            border-radius: 999px;
            border: 1px solid #374151;
          }}
          .badge.planning {{ color: #38bdf8; border-color: #0369a1; }}
          .badge.active {{ color: #22c55e; border-color: #15803d; }}
          .badge.hidden {{ color: #f97373; border-color: #b91c1c; }}
          .badge.nocoords {{ color: #fbbf24; border-color: #b45309; }}
          footer {{
            margin-top: 2.5rem;
            padding: 1.25rem 0;
            border-top: 1px solid #1f2937;
            font-size: 0.9rem;
            text-align: center;
            color: #9ca3af;
          }}
        </style>
      </head>
      <body>
        <div class="page">
          <header>
            <div>
              <h1>{esc(title)}</h1>
              <div class="signed-in">{signed_in_text}</div>
            </div>
            <nav>
              {nav_links(ctx)}
            </nav>
          </header>
          <main>
            {body}
          </main>
          <footer>
            <div><strong>{SITE_NAME}</strong> · Rakennushankkeet kartalla · Karttadata © OpenStreetMap</div>
          </footer>
        </div>
      </body>
    </html>
    """
    return HTMLResponse(content=html, status_code=status_code)


__all__ = ["SITE_NAME", "esc", "nav_links", "render_page"]
