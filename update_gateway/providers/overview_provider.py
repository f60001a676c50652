"""
Overview Provider - данные и HTML для страницы обзора релиза
"""

import html
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from .platform_provider import PlatformKey
from .snapshot_provider import ReleaseSnapshot

GITHUB_URL = "https://github.com"


def parse_pub_date(pub_date: Optional[str]) -> Optional[datetime]:
    """ISO-8601 дата публикации -> aware datetime (UTC по умолчанию)"""
    if not pub_date:
        return None
    try:
        parsed = datetime.fromisoformat(pub_date.replace('Z', '+00:00'))
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _distance_in_words(seconds: float) -> str:
    minutes = round(seconds / 60)

    if seconds < 30:
        return "less than a minute"
    if minutes < 2:
        return "1 minute"
    if minutes < 45:
        return f"{minutes} minutes"
    if minutes < 90:
        return "about 1 hour"
    if minutes < 1440:
        return f"about {round(minutes / 60)} hours"
    if minutes < 2520:
        return "1 day"
    if minutes < 43200:
        return f"{round(minutes / 1440)} days"
    if minutes < 86400:
        return "about 1 month"
    if minutes < 525600:
        return f"{round(minutes / 43200)} months"

    years = int(minutes // 525600)
    remainder = minutes % 525600
    if remainder < 131400:
        return f"about {years} year" + ("s" if years > 1 else "")
    if remainder < 394200:
        return f"over {years} year" + ("s" if years > 1 else "")
    return f"almost {years + 1} years"


def format_relative_date(pub_date: Optional[str], now: Optional[datetime] = None) -> str:
    """
    Дата публикации в виде "3 days ago" / "in 2 hours"

    Args:
        pub_date: ISO-8601 строка из снимка
        now: Текущее время (для тестов)

    Returns:
        str: Относительная дата или "unknown"
    """
    published = parse_pub_date(pub_date)
    if published is None:
        return "unknown"

    now = now or datetime.now(timezone.utc)
    delta = (now - published).total_seconds()
    words = _distance_in_words(abs(delta))
    return f"{words} ago" if delta >= 0 else f"in {words}"


def prepare_details(snapshot: ReleaseSnapshot, config, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Данные для шаблона страницы обзора"""
    repo_url = f"{GITHUB_URL}/{config.account}/{config.repository}"
    all_releases = f"{repo_url}/releases"
    mac = snapshot.asset(PlatformKey.DARWIN)
    windows = snapshot.asset(PlatformKey.MSI)

    return {
        "account": config.account,
        "repository": config.repository,
        "date": format_relative_date(snapshot.pub_date, now),
        "files": {
            "mac": mac.url if mac else None,
            "windows": windows.url if windows else None
        },
        "version": snapshot.version,
        "releaseNotes": f"{all_releases}/tag/{snapshot.version}" if snapshot.version else all_releases,
        "allReleases": all_releases,
        "github": repo_url
    }


def _escape(value: Any) -> str:
    return html.escape(str(value)) if value is not None else ""


def render_overview(details: Dict[str, Any]) -> str:
    """Генерация HTML страницы обзора"""
    e = _escape

    downloads = []
    for label, key in (("macOS", "mac"), ("Windows", "windows")):
        url = details["files"].get(key)
        if url:
            downloads.append(f'<a class="download" href="{e(url)}">Download for {label}</a>')
    downloads_html = "\n        ".join(downloads) or "<p>No downloads available yet.</p>"

    return f'''<!DOCTYPE html>
<html>
<head>
    <title>{e(details["repository"])} - Latest Release</title>
    <meta charset="utf-8">
    <style>
        body {{ font-family: Arial, sans-serif; margin: 40px; }}
        .info {{ background: #e8f4fd; padding: 10px; margin: 10px 0; border-radius: 5px; }}
        .download {{ display: inline-block; margin-right: 10px; }}
    </style>
</head>
<body>
    <h1>{e(details["account"])}/{e(details["repository"])}</h1>
    <div class="info">
        <p><strong>Version:</strong> {e(details["version"])}</p>
        <p><strong>Published:</strong> {e(details["date"])}</p>
    </div>
    <div>
        {downloads_html}
    </div>
    <p>
        <a href="{e(details["releaseNotes"])}">Release notes</a> |
        <a href="{e(details["allReleases"])}">All releases</a> |
        <a href="{e(details["github"])}">GitHub</a>
    </p>
</body>
</html>'''
