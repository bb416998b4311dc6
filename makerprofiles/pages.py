"""HTML rendering helpers for Maker Profiles."""

from __future__ import annotations

import os
from collections import Counter
from collections.abc import Iterable
from datetime import datetime, timezone
from html import escape
from urllib.parse import quote, urlencode
from zoneinfo import ZoneInfo

from makerprofiles.config import (
    APP_NAME,
    MAX_BIO_LENGTH,
    MAX_COURSE_ID_LENGTH,
    MAX_COURSE_NOTE_LENGTH,
    MAX_COURSE_TITLE_LENGTH,
    MAX_HANDLE_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TAG_SUMMARY,
    MAX_TOP_COURSES,
    TAG_OPTIONS,
)
from makerprofiles.models import Profile, TopCourse

STYLES = """
  :root{
    --bg:#fff9e6; --bg2:#fffdf6; --card:#ffffff; --text:#1f2937; --muted:#6b7280;
    --border:rgba(0,0,0,.10); --accent:#ffd000; --accent2:#ffb800; --link:#0b62ff;
    --chip:#fff2b3; --radius:18px;
  }
  * { box-sizing: border-box; }
  body{
    margin:24px; font-family:system-ui,-apple-system,"Segoe UI",sans-serif;
    line-height:1.65; color:var(--text);
    background:radial-gradient(1200px 600px at 10% 0%, var(--bg2) 0%, var(--bg) 55%, #ffffff 100%);
  }
  header{
    display:flex; gap:12px; align-items:center; justify-content:space-between;
    margin-bottom:18px; padding:14px 16px; border:1px solid var(--border);
    border-radius:var(--radius); background:linear-gradient(180deg,#ffffff 0%,#fff7d4 100%);
  }
  .brand a{ font-weight:900; color:var(--text); text-decoration:none; }
  .brand a::before{ content:"★"; margin-right:8px; color:var(--accent2); }
  a{ color:var(--link); text-decoration:none; }
  a:hover{ text-decoration:underline; }
  .muted{ color:var(--muted); }
  .small{ font-size:12px; }
  .error{ color:#c00; }
  .card{
    border:1px solid var(--border); border-radius:var(--radius); padding:14px 16px;
    margin:10px 0; background:var(--card); box-shadow:0 10px 30px rgba(0,0,0,.08);
  }
  .card-head{ display:flex; justify-content:space-between; gap:10px; align-items:flex-start; }
  .row{ display:flex; gap:12px; flex-wrap:wrap; align-items:flex-start; }
  .row > div{ flex:1 1 420px; min-width:0; }
  .tags{ display:flex; flex-wrap:wrap; gap:8px; margin-top:10px; }
  .tag{
    display:inline-block; padding:2px 10px; border-radius:999px;
    background:var(--chip); border:1px solid var(--border); font-size:13px; color:var(--text);
  }
  .taggrid{ display:flex; flex-wrap:wrap; gap:10px; margin-top:10px; }
  .tagcheck{ display:inline-flex; gap:6px; align-items:center; }
  .taghint{ font-size:12px; color:var(--muted); margin-top:6px; }
  .copy{ font-family:ui-monospace,SFMono-Regular,Menlo,monospace; }
  label{ display:block; margin-top:12px; font-weight:700; }
  input, textarea{
    width:100%; padding:10px 12px; border-radius:12px; border:1px solid var(--border);
    font:inherit; background:#fff;
  }
  .tagcheck input{ width:auto; }
  textarea{ min-height:96px; resize:vertical; }
  button{
    padding:10px 18px; border-radius:999px; border:1px solid rgba(0,0,0,.15);
    background:var(--accent); font-weight:800; cursor:pointer;
  }
  ol.top10 li{ margin-bottom:10px; }
"""

TAG_LIMIT_SCRIPT = """
    <script>
      (function () {
        const boxes = Array.from(document.querySelectorAll('input[name="tags"]'));
        function enforce(){
          const checked = boxes.filter(b => b.checked);
          if (checked.length >= 2){
            boxes.forEach(b => { if (!b.checked) b.disabled = true; });
          } else {
            boxes.forEach(b => { b.disabled = false; });
          }
        }
        boxes.forEach(b => b.addEventListener("change", enforce));
        enforce();
      })();
    </script>"""

MAKER_ID_FORMAT_SCRIPT = """
    <script>
      (function () {
        const el = document.getElementById("makerIdInput");
        if (!el) return;
        function formatMakerId(raw) {
          const cleaned = (raw || "").toUpperCase().replace(/[^A-Z0-9]/g, "").slice(0, 9);
          return [cleaned.slice(0, 3), cleaned.slice(3, 6), cleaned.slice(6, 9)].filter(Boolean).join("-");
        }
        el.addEventListener("input", () => {
          const after = formatMakerId(el.value);
          if (el.value !== after) el.value = after;
        });
        el.addEventListener("blur", () => { el.value = formatMakerId(el.value); });
      })();
    </script>"""


def _local_tz():
    tz_name = (os.environ.get("TZ") or "").strip() or "UTC"
    try:
        return ZoneInfo(tz_name)
    except Exception:
        return timezone.utc


def _to_local(epoch_ms: int) -> datetime:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).astimezone(_local_tz())


def format_date(epoch_ms: int) -> str:
    """Format epoch milliseconds as a Japanese-locale date, e.g. ``2024/3/9``."""
    value = _to_local(epoch_ms)
    return f"{value.year}/{value.month}/{value.day}"


def format_datetime(epoch_ms: int) -> str:
    """Format epoch milliseconds as a Japanese-locale timestamp."""
    value = _to_local(epoch_ms)
    return f"{format_date(epoch_ms)} {value.hour}:{value.minute:02d}:{value.second:02d}"


def profile_path(handle: str) -> str:
    return f"/u/{quote(handle, safe='')}"


def _home_href(q: str = "", tag: str = "") -> str:
    params = {"q": q}
    if tag:
        params["tag"] = tag
    return f"/?{urlencode(params)}"


def filter_profiles(profiles: Iterable[Profile], q: str = "", tag: str = "") -> list[Profile]:
    """Return matching profiles, most recently updated first.

    Args:
        profiles: Candidate profiles.
        q: Case-insensitive substring matched against name, handle, bio and
            tags. Empty matches everything.
        tag: Exact tag the profile must carry. Empty matches everything.

    Returns:
        Filtered profiles ordered by ``updated_at`` descending.
    """
    needle = q.lower()
    ordered = sorted(profiles, key=lambda p: p.updated_at, reverse=True)
    return [
        p
        for p in ordered
        if (not needle or needle in p.search_text()) and (not tag or tag in p.tags)
    ]


def tag_counts(profiles: Iterable[Profile], limit: int = MAX_TAG_SUMMARY) -> list[tuple[str, int]]:
    """Count tag usage across profiles, most used first, capped to ``limit``."""
    counts: Counter[str] = Counter()
    for profile in profiles:
        counts.update(profile.tags)
    return counts.most_common(limit)


def layout(title: str, body: str) -> bytes:
    """Wrap page content in the shared document shell.

    Args:
        title: Page title; escaped here.
        body: Already-escaped HTML body content.

    Returns:
        UTF-8 encoded HTML document bytes.
    """
    page_html = f"""<!doctype html>
<html lang="ja">
<head>
<meta charset="utf-8" />
<meta name="viewport" content="width=device-width,initial-scale=1" />
<title>{escape(title)} - {APP_NAME}</title>
<style>{STYLES}</style>
</head>
<body>
<header>
  <div class="brand"><a href="/">{APP_NAME}</a></div>
  <nav class="muted">
    <a href="/new">プロフィール作成</a>
    <span> · </span>
    <a href="/makers">職人一覧</a>
    <span> · </span>
    <a href="/edit">編集</a>
  </nav>
</header>
{body}
</body>
</html>"""
    return page_html.encode("utf-8")


def _tag_chips(tags: Iterable[str]) -> str:
    return "".join(
        f'<a class="tag" href="/?{urlencode({"tag": t})}">{escape(t)}</a>' for t in tags
    )


def _profile_card(profile: Profile, show_top_course: bool) -> str:
    top = profile.top_course if show_top_course else None
    top_html = ""
    if top is not None:
        top_html = (
            f'<div class="muted small" style="margin-top:10px;">Top1: {escape(top.title)} '
            f'<span class="copy">({escape(top.course_id)})</span></div>'
        )
    return f"""<div class="card">
        <div class="card-head">
          <div>
            <div><strong><a href="{profile_path(profile.handle)}">{escape(profile.name)}</a></strong> <span class="muted">@{escape(profile.handle)}</span></div>
            <div class="muted small">職人ID: {escape(profile.maker_id)}</div>
          </div>
          <div class="muted small">{format_date(profile.updated_at)}</div>
        </div>
        <div style="margin-top:8px;">{escape(profile.bio)}</div>
        <div class="tags">{_tag_chips(profile.tags)}</div>
        {top_html}
      </div>"""


def render_home_page(profiles: Iterable[Profile], q: str = "", tag: str = "") -> bytes:
    """Render the searchable profile list with tag shortcuts."""
    everyone = list(profiles)
    matches = filter_profiles(everyone, q=q, tag=tag)

    tag_links = []
    for name, count in tag_counts(everyone):
        href = _home_href(q) if name == tag else _home_href(q, name)
        tag_links.append(
            f'<a class="tag" href="{escape(href)}" title="{count}人">{escape(name)} ({count})</a>'
        )
    tag_html = "".join(tag_links) or '<span class="muted">まだタグがありません。</span>'

    active_tag_html = ""
    if tag:
        active_tag_html = (
            f'<span class="muted small" style="margin-left:12px;">絞り込み中: '
            f"<strong>{escape(tag)}</strong> "
            f'<a href="{escape(_home_href(q))}" class="muted" style="margin-left:6px;">解除</a></span>'
        )

    cards = "".join(_profile_card(p, show_top_course=True) for p in matches)
    if not cards:
        cards = '<p class="muted">まだプロフィールがありません。<a href="/new">作成</a>してみてください。</p>'

    body = f"""
  <p class="muted">プロフィールを作成して、あなたのお気に入りのコースを共有しましょう！</p>
  <div class="card">
    <form method="GET" action="/">
      <div class="row">
        <div>
          <label for="search-q">名前から職人を探す</label>
          <input id="search-q" name="q" value="{escape(q)}" placeholder="例: ゲストさん" />
        </div>
      </div>
      <div style="margin-top:12px;">
        <button type="submit">検索</button>
        <a class="muted" style="margin-left:10px;" href="/">リセット</a>
        {active_tag_html}
      </div>
    </form>
    <hr style="opacity:.22; margin:16px 0;" />
    <div><strong>タグから職人を探す</strong> <span class="muted small">(数字は使われているタグの数)</span></div>
    <div class="tags tag-summary">{tag_html}</div>
  </div>
  <h2>職人一覧 <span class="muted small">({len(matches)})</span></h2>
  {cards}
  <p class="muted">このサイトは非公式のファンサイトです。任天堂株式会社とは一切関係ありません。</p>
"""
    return layout("トップ", body)


def render_makers_page(profiles: Iterable[Profile]) -> bytes:
    """Render every profile, newest-updated first."""
    everyone = filter_profiles(profiles)
    items = "".join(_profile_card(p, show_top_course=False) for p in everyone)
    if not items:
        items = '<p class="muted">まだプロフィールがありません。<a href="/new">プロフィール作成</a>へ。</p>'
    body = f"""
<h1 style="margin-top:0;">職人一覧 <span class="muted small">({len(everyone)})</span></h1>
<p class="muted">登録されている職人をすべて表示しています。名前をクリックするとプロフィールに移動します。</p>
{items}
"""
    return layout("職人一覧", body)


def _course_item(rank: int, course: TopCourse) -> str:
    note_html = f'<div class="muted small">{escape(course.note)}</div>' if course.note else ""
    title = escape(course.title or "(未入力)")
    course_id = escape(course.course_id or "-")
    return f"""<li>
        <strong>#{rank} {title}</strong><br/>
        <div class="sub">
          <div class="copy">ID: {course_id}</div>
          {note_html}
        </div>
      </li>"""


def render_profile_page(profile: Profile) -> bytes:
    """Render one profile with its favorites in stored order."""
    bio_html = escape(profile.bio) if profile.bio else '<span class="muted">なし</span>'
    tags_html = _tag_chips(profile.tags) or '<span class="muted">なし</span>'
    if any(course.title or course.course_id for course in profile.top10):
        items = "".join(
            _course_item(rank, course) for rank, course in enumerate(profile.top10, start=1)
        )
        courses_html = f'<ol class="top10">{items}</ol>'
    else:
        courses_html = '<p class="muted">お気に入りのコースは未登録です。</p>'

    name = escape(profile.name)
    handle = escape(profile.handle)
    body = f"""
<div class="card">
  <div class="card-head">
    <div>
      <h1 style="margin:0;">{name}</h1>
      <div class="muted">@{handle}</div>
      <div class="muted small" style="margin-top:4px;">職人ID: <span class="copy">{escape(profile.maker_id)}</span></div>
    </div>
    <div class="muted small">更新: {format_datetime(profile.updated_at)}</div>
  </div>
  <p class="bio">{bio_html}</p>
  <h3>職人タグ</h3>
  <div class="tags">{tags_html}</div>
  <h3 style="margin-top:16px;">{name}のお気に入りのコース</h3>
  {courses_html}
  <hr style="opacity:.3; margin:16px 0;" />
  <p class="muted small">このURLをそのまま貼って名刺として使えます： <span class="copy">/u/{handle}</span></p>
</div>
<p><a href="/">← 一覧へ戻る</a></p>
"""
    return layout(profile.name, body)


def render_not_found_page() -> bytes:
    return layout(
        "見つかりません",
        '<p>ページが見つかりません。</p><p><a href="/">トップへ</a></p>',
    )


def render_profile_not_found_page() -> bytes:
    return layout(
        "見つかりません",
        '<p>プロフィールが見つかりません。<a href="/">トップへ</a></p>',
    )


def render_bad_request_page(message: str, back_href: str = "/new") -> bytes:
    return layout(
        "エラー",
        f'<p class="error">{escape(message)}</p><p><a href="{escape(back_href)}">戻る</a></p>',
    )


def render_forbidden_page(message: str) -> bytes:
    return layout(
        "編集できません",
        f'<div class="card"><p>{escape(message)}</p><p><a href="/new">新規作成</a></p></div>',
    )


def render_server_error_page(detail: str) -> bytes:
    return layout(
        "サーバエラー",
        f'<p class="error">{escape(detail)}</p><p><a href="/">トップへ</a></p>',
    )


def render_already_created_page(profile: Profile) -> bytes:
    """Tell a client that already owns a profile to edit it instead."""
    body = f"""<div class="card">
  <h1 style="margin-top:0;">あなたは既にプロフィールを作成しています</h1>
  <p class="muted">新規作成ではなく、編集してください。</p>
  <p><a href="{profile_path(profile.handle)}">自分のプロフィールを見る</a></p>
  <p><a href="/edit">編集ページへ</a></p>
</div>"""
    return layout("作成済み", body)


def _tag_checkboxes(selected: Iterable[str] = ()) -> str:
    chosen = set(selected)
    boxes = []
    for tag in TAG_OPTIONS:
        checked = " checked" if tag in chosen else ""
        boxes.append(
            f"""
        <label class="tagcheck">
          <input type="checkbox" name="tags" value="{escape(tag)}"{checked} />
          <span>{escape(tag)}</span>
        </label>"""
        )
    return "".join(boxes)


def _course_fieldsets(courses: list[TopCourse], with_placeholders: bool) -> str:
    blocks = []
    for n in range(1, MAX_TOP_COURSES + 1):
        course = courses[n - 1] if n <= len(courses) else TopCourse()
        note = escape(course.note or "")
        if with_placeholders:
            title_hint = ' placeholder="例: Snow Night Walk"'
            id_hint = ' placeholder="例: ABC-123-DEF"'
            note_hint = ' placeholder="例: 雪BGMと一本道。落ち着く雰囲気。"'
            note_label = "ひとこと（任意）"
        else:
            title_hint = id_hint = note_hint = ""
            note_label = "ひとこと"
        blocks.append(
            f"""
      <div class="card course-slot" style="margin-top:10px;">
        <div class="muted small">#{n}</div>
        <label>コース名</label>
        <input name="c_title_{n}" maxlength="{MAX_COURSE_TITLE_LENGTH}" value="{escape(course.title)}"{title_hint} />
        <label>コースID</label>
        <input name="c_id_{n}" maxlength="{MAX_COURSE_ID_LENGTH}" value="{escape(course.course_id)}"{id_hint} />
        <label>{note_label}</label>
        <input name="c_note_{n}" maxlength="{MAX_COURSE_NOTE_LENGTH}" value="{note}"{note_hint} />
      </div>"""
        )
    return "".join(blocks)


def render_new_profile_page() -> bytes:
    """Render the empty creation form."""
    body = f"""
<div class="card">
  <p class="muted">プロフィールはいつでも編集できます。</p>
  <form method="POST" action="/new">
    <label>表示名（必須）</label>
    <input name="name" required maxlength="{MAX_NAME_LENGTH}" placeholder="例: マリオ / Mario" />

    <label>プロフィールURL（任意・英数字）</label>
    <input name="handle" maxlength="{MAX_HANDLE_LENGTH}" placeholder="例: mario（空なら自動生成）" />
    <div class="small muted">空なら表示名から自動生成します（英数字以外は自動で削除）</div>

    <label>職人ID（必須）</label>
    <input
      id="makerIdInput"
      name="makerId"
      required
      maxlength="11"
      placeholder="例: ABC-123-DEF"
      autocomplete="off"
      autocapitalize="characters"
      style="text-transform: uppercase;"
      pattern="[A-Za-z0-9]{{3}}-[A-Za-z0-9]{{3}}-[A-Za-z0-9]{{3}}"
      title="例: ABC-123-DEF（英大文字/数字 3-3-3）"
    />
    <div class="small muted">小文字OK。入力中に自動で ABC-123-DEF の形に整形します</div>

    <label>自己紹介（任意）</label>
    <textarea name="bio" maxlength="{MAX_BIO_LENGTH}" placeholder="例: スタンダードコースを中心に制作しています。"></textarea>

    <label>職人タグ（あなたのアートスタイルを設定しましょう）</label>
    <div class="taggrid">{_tag_checkboxes()}
    </div>
    <div class="taghint">※ 最大2つまで選べます</div>
{TAG_LIMIT_SCRIPT}

    <hr style="opacity:.3; margin:16px 0;" />
    <div><strong>お気に入りのコース</strong> <span class="muted small">（10コースまで登録できます / 空でもOK）</span></div>
    {_course_fieldsets([], with_placeholders=True)}

    <div style="margin-top:14px;">
      <button type="submit">作成する</button>
    </div>
{MAKER_ID_FORMAT_SCRIPT}
  </form>
</div>
"""
    return layout("プロフィール作成", body)


def render_edit_page(profile: Profile) -> bytes:
    """Render the edit form pre-filled from the owned profile."""
    name = escape(profile.name)
    body = f"""
<div class="card">
  <h1 style="margin-top:0;">プロフィール編集</h1>
  <p class="muted">自分のプロフィールだけ編集できます。</p>
  <form method="POST" action="/edit">
    <label>表示名</label>
    <input name="name" required maxlength="{MAX_NAME_LENGTH}" value="{name}" />

    <label>ID</label>
    <input name="makerId" required maxlength="{MAX_COURSE_ID_LENGTH}" value="{escape(profile.maker_id)}" />

    <label>自己紹介（任意）</label>
    <textarea name="bio" maxlength="{MAX_BIO_LENGTH}">{escape(profile.bio)}</textarea>

    <label>タグ（最大2つ）</label>
    <div class="taggrid">{_tag_checkboxes(profile.tags)}
    </div>
    <div class="taghint">※ 最大2つまで選べます</div>
{TAG_LIMIT_SCRIPT}

    <hr style="opacity:.3; margin:16px 0;" />
    <div><strong>{name}のお気に入りのコース</strong></div>
    {_course_fieldsets(profile.top10, with_placeholders=False)}

    <div style="margin-top:14px;">
      <button type="submit">更新する</button>
      <a class="muted" style="margin-left:10px;" href="{profile_path(profile.handle)}">キャンセル</a>
    </div>
  </form>
</div>
"""
    return layout("プロフィール編集", body)
