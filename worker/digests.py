"""
Saved-search digest job.

For every enabled watch, in order:
- skip it unless it is due (never sent, or a full period since the last send)
- query public projects created after the window start that match its filters
- nothing new: advance last_sent_at, send nothing
- otherwise email the owner and advance last_sent_at only after a successful send

Debug mode runs the due check and query for each watch and reports what it
found, without sending mail or writing anything.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from html import escape
from typing import Dict, List, Optional

from app.email_utils import send_email
from core.config import public_base_url
from core.database import (
    find_new_public_projects,
    get_enabled_watches,
    get_user_by_id,
    mark_watch_sent,
    parse_iso,
    to_iso,
    utc_now,
)
from core.filters import ProjectFilters

log = logging.getLogger("digests")

PERIODS = {
    "daily": timedelta(days=1),
    "weekly": timedelta(days=7),
}
MAX_LISTED = 30


def period_for(frequency: str) -> timedelta:
    return PERIODS.get(frequency, PERIODS["weekly"])


def is_due(frequency: str, last_sent_at: Optional[datetime], now: datetime) -> bool:
    if last_sent_at is None:
        return True
    return now - last_sent_at >= period_for(frequency)


def window_since(frequency: str, last_sent_at: Optional[datetime], now: datetime) -> datetime:
    """Start of the lookup window: the last send, or one period back for a first run."""
    if last_sent_at is not None:
        return last_sent_at
    return now - period_for(frequency)


@dataclass
class DigestEmail:
    subject: str
    text: str
    html: str


@dataclass
class DigestResult:
    checked: int = 0
    sent: int = 0
    debug_rows: List[Dict] = field(default_factory=list)

    def as_json(self, debug: bool = False) -> Dict:
        payload = {"ok": True, "checked": self.checked, "sent": self.sent}
        if debug:
            payload["debugRows"] = self.debug_rows
        return payload


def _meta_line(project: Dict) -> str:
    parts = [project.get("city"), project.get("region") or "-", project.get("phase")]
    return " • ".join(p for p in parts if p)


def compose_digest(watch: Dict, projects: List[Dict], base_url: str) -> DigestEmail:
    """Subject plus plain-text and HTML bodies for one watch's new projects."""
    name = watch.get("name") or ""
    filters: ProjectFilters = watch.get("filters") or ProjectFilters()
    summary = filters.summary()
    total = len(projects)
    listed = projects[:MAX_LISTED]
    projects_url = f"{base_url}/projects"
    watchlists_url = f"{base_url}/watchlists"

    subject = f"Uusia hankkeita ({total}) – {name}"

    text_lines = [
        f"• {p.get('name')} – {p.get('city') or ''} – {p.get('region') or '-'} ({p.get('phase') or ''})"
        for p in listed
    ]
    text_parts = [
        "Hei!",
        "",
        f"Hakuvahti: {name}",
        f"Suodattimet: {summary}",
        "",
        f"Löytyi {total} uutta hanketta edellisen koonnin jälkeen.",
        "",
        *text_lines,
    ]
    if total > MAX_LISTED:
        text_parts.extend(["", f"Näytetään {MAX_LISTED} / {total}. Avaa palvelu nähdäksesi kaikki."])
    text_parts.extend(
        [
            "",
            f"Avaa Työmaat: {projects_url}",
            f"Hallinnoi hakuvahteja: {watchlists_url}",
            "",
        ]
    )
    text = "\n".join(text_parts)

    rows_html = "".join(
        f"""
            <tr>
              <td style="padding:10px 0;border-bottom:1px solid #e5e7eb;">
                <div style="font-weight:700;color:#111827;">{escape(str(p.get('name') or ''))}</div>
                <div style="font-size:13px;color:#6b7280;margin-top:2px;">{escape(_meta_line(p))}</div>
              </td>
            </tr>"""
        for p in listed
    )
    more_html = ""
    if total > MAX_LISTED:
        more_html = (
            '<div style="font-size:13px;color:#6b7280;margin-top:10px;">'
            f"Näytetään {MAX_LISTED} / {total}. Avaa palvelu nähdäksesi kaikki.</div>"
        )

    html = f"""
    <div style="font-family:system-ui,-apple-system,Segoe UI,Roboto,Helvetica,Arial;background:#f9fafb;padding:24px;">
      <div style="max-width:640px;margin:0 auto;background:#ffffff;border:1px solid #e5e7eb;border-radius:14px;overflow:hidden;">
        <div style="padding:18px 20px;border-bottom:1px solid #e5e7eb;">
          <div style="font-size:18px;font-weight:800;color:#111827;">Työmaat.fi</div>
          <div style="margin-top:6px;color:#374151;">
            <div style="font-weight:700;">Uusia hankkeita: {total}</div>
            <div style="font-size:13px;color:#6b7280;margin-top:4px;">Hakuvahti: {escape(name)}</div>
            <div style="font-size:13px;color:#6b7280;margin-top:2px;">Suodattimet: {escape(summary)}</div>
          </div>
        </div>
        <div style="padding:6px 20px 0 20px;">
          <table style="width:100%;border-collapse:collapse;">{rows_html}
          </table>
          {more_html}
          <div style="margin:18px 0 6px 0;">
            <a href="{escape(projects_url)}"
               style="display:inline-block;background:#111827;color:#ffffff;text-decoration:none;padding:12px 14px;border-radius:10px;font-weight:800;">
              Avaa Työmaat
            </a>
          </div>
          <div style="margin:10px 0 18px 0;font-size:13px;color:#6b7280;">
            Hallinnoi hakuvahteja:
            <a href="{escape(watchlists_url)}" style="color:#2563eb;text-decoration:none;">{escape(watchlists_url)}</a>
          </div>
        </div>
      </div>
    </div>
    """
    return DigestEmail(subject=subject, text=text, html=html)


def _debug_row(watch: Dict, *, due: bool, since: Optional[datetime], found: Optional[int], note: str | None) -> Dict:
    filters = watch.get("filters")
    return {
        "watch_id": watch.get("id"),
        "name": watch.get("name"),
        "frequency": watch.get("frequency"),
        "last_sent_at": watch.get("last_sent_at"),
        "due": due,
        "since": to_iso(since) if since else None,
        "filters": filters.to_dict() if isinstance(filters, ProjectFilters) else {},
        "projects_found": found,
        "note": note,
    }


def _advance(watch_id, now: datetime, *, force: bool = False) -> None:
    try:
        advanced = mark_watch_sent(watch_id, now, force=force)
    except Exception as e:
        log.error("Failed to update last_sent_at", extra={"watch_id": watch_id, "error": str(e)})
        return
    if not advanced:
        log.warning("last_sent_at not advanced", extra={"watch_id": watch_id, "sent_at": to_iso(now)})


def _read_last_sent(watch: Dict) -> Optional[datetime]:
    try:
        return parse_iso(watch.get("last_sent_at"))
    except ValueError:
        # An unreadable timestamp is treated as never sent.
        log.warning("Unreadable last_sent_at", extra={"watch_id": watch.get("id"), "value": watch.get("last_sent_at")})
        return None


def run_digests(*, now: Optional[datetime] = None, debug: bool = False) -> DigestResult:
    """
    Process every enabled watch once. Listing the watches is the only step
    whose failure propagates; per-watch failures are logged and skipped.
    """
    now = now or utc_now()
    base_url = public_base_url()
    result = DigestResult()

    watches = get_enabled_watches()
    log.info("Digest run started", extra={"watches": len(watches), "debug": debug})

    for watch in watches:
        result.checked += 1
        watch_id = watch.get("id")
        frequency = watch.get("frequency") or "weekly"
        last_sent = _read_last_sent(watch)
        # Unreadable stored values cannot be compared in SQL, so they are overwritten.
        repair = last_sent is None and watch.get("last_sent_at") not in (None, "")

        due = is_due(frequency, last_sent, now)
        if not due:
            if debug:
                result.debug_rows.append(_debug_row(watch, due=False, since=None, found=None, note="Skipped (not due)"))
            continue

        since = window_since(frequency, last_sent, now)
        filters = watch.get("filters") or ProjectFilters()

        try:
            projects = find_new_public_projects(since, filters)
        except Exception as e:
            log.error("Projects query failed", extra={"watch_id": watch_id, "error": str(e)})
            if debug:
                result.debug_rows.append(
                    _debug_row(watch, due=True, since=since, found=None, note=f"Projects query error: {e}")
                )
            continue

        if debug:
            result.debug_rows.append(_debug_row(watch, due=True, since=since, found=len(projects), note=None))
            continue

        if not projects:
            _advance(watch_id, now, force=repair)
            continue

        try:
            user = get_user_by_id(watch["user_id"])
        except Exception as e:
            log.error("User lookup failed", extra={"watch_id": watch_id, "error": str(e)})
            continue
        email = (user or {}).get("email")
        if not email:
            log.error("Watch owner has no email", extra={"watch_id": watch_id, "user_id": watch.get("user_id")})
            continue

        message = compose_digest(watch, projects, base_url)
        try:
            send_email(email, message.subject, message.text, message.html)
        except Exception as e:
            log.error("Failed to send digest", extra={"watch_id": watch_id, "to": email, "error": str(e)})
            continue

        _advance(watch_id, now, force=repair)
        result.sent += 1
        log.info("Digest sent", extra={"watch_id": watch_id, "to": email, "projects": len(projects)})

    log.info("Digest run complete", extra={"checked": result.checked, "sent": result.sent})
    return result


__all__ = [
    "PERIODS",
    "MAX_LISTED",
    "period_for",
    "is_due",
    "window_since",
    "DigestEmail",
    "DigestResult",
    "compose_digest",
    "run_digests",
]
