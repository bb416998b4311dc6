"""Server-rendered Maker Profiles application.

This module provides a minimal HTTP server for creating, browsing, and
editing maker profiles kept in memory and snapshotted to a JSON file.
"""

from __future__ import annotations

import argparse
import json
import logging
from collections.abc import Callable, Iterable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Optional
from urllib.parse import ParseResult, parse_qs, unquote, urlparse

from makerprofiles.auth import (
    identity_cookie_headers,
    identity_from_cookies,
    new_edit_secret,
    owned_profile,
    parse_cookie_header,
)
from makerprofiles.config import (
    SAVE_DELAY_SECONDS,
    get_host,
    get_log_level,
    get_port,
    preferred_data_dir,
)
from makerprofiles.forms import FormError, parse_profile_form
from makerprofiles.models import Profile
from makerprofiles.normalize import normalize_query, unique_handle
from makerprofiles.pages import (
    profile_path,
    render_already_created_page,
    render_bad_request_page,
    render_edit_page,
    render_forbidden_page,
    render_home_page,
    render_makers_page,
    render_new_profile_page,
    render_not_found_page,
    render_profile_not_found_page,
    render_profile_page,
    render_server_error_page,
)
from makerprofiles.seed import seed_example
from makerprofiles.store import (
    HandleTakenError,
    ProfileStore,
    SaveScheduler,
    resolve_data_dir,
)

logger = logging.getLogger(__name__)

PROFILE_PREFIX = "/u/"


def build_app(
    data_dir: Path | str | None = None,
    delay: float = SAVE_DELAY_SECONDS,
    seed: bool = True,
) -> tuple[ProfileStore, SaveScheduler]:
    """Create the store and save scheduler used by the server.

    Args:
        data_dir: Preferred snapshot directory; defaults to the configured one.
        delay: Debounce window for snapshot writes, in seconds.
        seed: Whether to add the sample profile when no snapshot was loaded.

    Returns:
        The loaded store and a scheduler that flushes it.
    """
    resolved = resolve_data_dir(data_dir or preferred_data_dir())
    store = ProfileStore.in_dir(resolved)
    scheduler = SaveScheduler(store.save, delay=delay)
    if not store.load() and seed:
        seed_example(store)
        scheduler.arm()
    return store, scheduler


class ProfileServer(ThreadingHTTPServer):
    """Threaded HTTP server carrying the store and save scheduler."""

    daemon_threads = True

    def __init__(self, address, store: ProfileStore, scheduler: SaveScheduler):
        self.store = store
        self.scheduler = scheduler
        super().__init__(address, AppHandler)


class AppHandler(BaseHTTPRequestHandler):
    """HTTP handler for the profile pages."""

    server: ProfileServer
    server_version = "MakerProfiles/1.0"

    @property
    def store(self) -> ProfileStore:
        return self.server.store

    @property
    def scheduler(self) -> SaveScheduler:
        return self.server.scheduler

    def _send_html(self, status: int, body: bytes, cookies: Iterable[str] = ()) -> None:
        """Write an HTML response."""
        self.send_response(status)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Cache-Control", "no-store")
        for cookie in cookies:
            self.send_header("Set-Cookie", cookie)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _send_json(self, status: int, payload: dict) -> None:
        """Write a JSON response."""
        data = json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Cache-Control", "no-store")
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(data)

    def _redirect(self, location: str, cookies: Iterable[str] = ()) -> None:
        """Send a 303 See Other to a local path."""
        self.send_response(303)
        self.send_header("Location", location)
        for cookie in cookies:
            self.send_header("Set-Cookie", cookie)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def _read_form(self) -> dict[str, list[str]]:
        """Read and parse a form-encoded request body."""
        length = int(self.headers.get("Content-Length") or 0)
        body = self.rfile.read(length).decode("utf-8", errors="replace") if length > 0 else ""
        return parse_qs(body, keep_blank_values=True)

    def _behind_https(self) -> bool:
        forwarded_proto = (self.headers.get("X-Forwarded-Proto") or "").strip().lower()
        return forwarded_proto == "https"

    def _owned_profile(self) -> Optional[Profile]:
        """Resolve the profile this client holds the edit secret for."""
        identity = identity_from_cookies(parse_cookie_header(self.headers.get("Cookie")))
        return owned_profile(self.store, identity)

    def _dispatch(self, handler: Callable[[ParseResult], None]) -> None:
        """Run a route handler, turning unexpected failures into a 500 page."""
        parsed = urlparse(self.path)
        try:
            handler(parsed)
        except Exception as exc:
            logger.exception(f"Unhandled error for {self.command} {parsed.path}")
            self._send_html(500, render_server_error_page(str(exc)))

    def do_GET(self):
        self._dispatch(self._route_get)

    def do_HEAD(self):
        self._dispatch(self._route_get)

    def do_POST(self):
        self._dispatch(self._route_post)

    def do_PUT(self):
        self._dispatch(self._not_found)

    def do_PATCH(self):
        self._dispatch(self._not_found)

    def do_DELETE(self):
        self._dispatch(self._not_found)

    def _not_found(self, parsed: ParseResult) -> None:
        self._send_html(404, render_not_found_page())

    def _route_get(self, parsed: ParseResult) -> None:
        """Handle GET requests for pages and the health API."""
        path = parsed.path
        if path == "/":
            query = parse_qs(parsed.query)
            q = normalize_query(query.get("q", [""])[0])
            tag = query.get("tag", [""])[0].strip()
            return self._send_html(200, render_home_page(self.store.all(), q=q, tag=tag))

        if path == "/makers":
            return self._send_html(200, render_makers_page(self.store.all()))

        if path == "/new":
            mine = self._owned_profile()
            if mine is not None:
                return self._send_html(200, render_already_created_page(mine))
            return self._send_html(200, render_new_profile_page())

        if path.startswith(PROFILE_PREFIX):
            handle = unquote(path[len(PROFILE_PREFIX) :])
            profile = self.store.get(handle)
            if profile is None:
                return self._send_html(404, render_profile_not_found_page())
            return self._send_html(200, render_profile_page(profile))

        if path == "/edit":
            identity = identity_from_cookies(parse_cookie_header(self.headers.get("Cookie")))
            if identity is None:
                return self._send_html(
                    403,
                    render_forbidden_page(
                        "編集キーが見つかりません（この端末で作成していない可能性があります）。"
                    ),
                )
            mine = owned_profile(self.store, identity)
            if mine is None:
                return self._send_html(403, render_forbidden_page("編集権限がありません。"))
            return self._send_html(200, render_edit_page(mine))

        if path == "/api/health":
            return self._send_json(200, {"ok": True, "profiles": len(self.store)})

        return self._not_found(parsed)

    def _route_post(self, parsed: ParseResult) -> None:
        """Handle POST requests for creating and editing profiles."""
        if parsed.path == "/new":
            return self._create_profile()
        if parsed.path == "/edit":
            return self._edit_profile()
        return self._not_found(parsed)

    def _create_profile(self) -> None:
        fields = self._read_form()
        if self._owned_profile() is not None:
            return self._redirect("/edit")

        form = parse_profile_form(fields)
        if isinstance(form, FormError):
            return self._send_html(400, render_bad_request_page(form.message, "/new"))

        secret = new_edit_secret()
        profile = None
        for attempt in range(2):
            candidate = Profile(
                handle=unique_handle(form.handle, form.name, self.store.has_handle),
                name=form.name,
                maker_id=form.maker_id,
                bio=form.bio,
                tags=form.tags,
                top10=form.top10,
                edit_secret=secret,
            )
            try:
                profile = self.store.add(candidate)
                break
            except HandleTakenError:
                if attempt:
                    raise
        self.scheduler.arm()
        logger.info(f"Created profile {profile.handle}.")

        cookies = identity_cookie_headers(
            profile.handle, profile.edit_secret, secure=self._behind_https()
        )
        return self._redirect(profile_path(profile.handle), cookies=cookies)

    def _edit_profile(self) -> None:
        fields = self._read_form()
        mine = self._owned_profile()
        if mine is None:
            return self._send_html(403, render_forbidden_page("権限がありません。"))

        form = parse_profile_form(fields)
        if isinstance(form, FormError):
            return self._send_html(400, render_bad_request_page(form.message, "/edit"))

        updated = mine.edited(
            name=form.name,
            maker_id=form.maker_id,
            bio=form.bio,
            tags=form.tags,
            top10=form.top10,
        )
        self.store.put(updated)
        self.scheduler.arm()
        logger.info(f"Updated profile {updated.handle}.")
        return self._redirect(profile_path(updated.handle))

    def log_message(self, fmt, *args):
        """Route per-request access lines to the module logger at debug level."""
        logger.debug(f"{self.address_string()} {fmt % args}")


def main() -> None:
    """Run the Maker Profiles HTTP server from CLI arguments."""
    logging.basicConfig(
        level=get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    parser = argparse.ArgumentParser(description="Serve the maker profile site")
    parser.add_argument("--host", default=get_host())
    parser.add_argument("--port", type=int, default=get_port())
    parser.add_argument("--data-dir", default=None, help="Override DATA_DIR")
    args = parser.parse_args()

    store, scheduler = build_app(args.data_dir)
    server = ProfileServer((args.host, args.port), store, scheduler)
    logger.info(f"Maker Profiles running at http://{args.host}:{args.port}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    finally:
        scheduler.flush_now()
        server.server_close()


if __name__ == "__main__":
    main()
