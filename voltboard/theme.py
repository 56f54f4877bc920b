"""공통 HTML 테마: 다크 테마 CSS + HTML 골격"""

CHART_JS_CDN = "https://cdn.jsdelivr.net/npm/chart.js@4.4.7/dist/chart.umd.min.js"

DARK_THEME_CSS = """
:root {
    --bg-page: #0f1117;
    --bg-card: #161b22;
    --bg-panel: #1c2128;
    --text-primary: #e5e7eb;
    --text-secondary: #9ca3af;
    --text-tertiary: #6b7280;
    --accent: #58a6ff;
    --used: #ef4444;
    --free: #22c55e;
    --border: rgba(255,255,255,0.08);
}
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: -apple-system, 'Pretendard', sans-serif; background: var(--bg-page); color: var(--text-primary); }
.container { max-width: 1400px; margin: 0 auto; padding: 24px; }

.section { background: var(--bg-card); border-radius: 12px; padding: 24px; margin: 20px 0; border: 1px solid var(--border); }
.section h2 { font-size: 18px; color: #fff; margin-bottom: 16px; }

table { width: 100%; border-collapse: collapse; font-size: 13px; }
th { background: var(--bg-panel); color: var(--text-secondary); font-weight: 600; padding: 10px 12px; text-align: left; }
td { padding: 10px 12px; border-bottom: 1px solid var(--border); }

.badge { display: inline-block; padding: 2px 8px; border-radius: 4px; font-size: 11px; font-weight: 600; }

*:focus-visible { outline: 2px solid var(--accent); outline-offset: 2px; }
*:focus:not(:focus-visible) { outline: none; }

@media (max-width: 768px) {
    .container { padding: 12px; }
    .section { padding: 16px; margin: 12px 0; border-radius: 8px; }
    table { font-size: 12px; }
    th, td { padding: 8px 6px; }
    .table-wrap { overflow-x: auto; -webkit-overflow-scrolling: touch; }
}
""".strip()


def wrap_html(
    title: str,
    body: str,
    *,
    extra_css: str = "",
    extra_js: str = "",
    include_chartjs: bool = False,
) -> str:
    chartjs_tag = f'<script src="{CHART_JS_CDN}"></script>' if include_chartjs else ""
    js_block = f"<script>\n{extra_js}\n</script>" if extra_js else ""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{title}</title>
{chartjs_tag}
<style>
{DARK_THEME_CSS}
{extra_css}
</style>
</head>
<body>
{body}
{js_block}
</body>
</html>"""
