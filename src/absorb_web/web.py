from __future__ import annotations
import argparse
import logging
import os
from dataclasses import asdict
from pathlib import Path

from flask import Flask, Response, abort, jsonify, render_template_string, send_from_directory

from absorb_archive import config as CFG
from absorb_archive.errors import NotFoundError, ValidationError
from absorb_archive.profiles import ProfileReader, parse_user_id
from absorb_archive.shards import locate
from absorb_archive.sources import FileSource, make_source
from absorb_archive.sources.api import ArchiveSource

from .formatting import format_date, format_duration, format_number, level_from_xp

log = logging.getLogger(__name__)

app = Flask(__name__)
app.add_template_filter(format_date, "date")
app.add_template_filter(format_number, "number")
app.add_template_filter(format_duration, "duration")
app.add_template_filter(level_from_xp, "level")

_site_root: Path | None = None
_reader: ProfileReader | None = None


def configure(site_root: str | os.PathLike[str] | None = None, *, source: ArchiveSource | None = None) -> None:
    """Point the site at an archive: a local site root (served under /data) and/or another source."""
    global _site_root, _reader
    _site_root = Path(site_root).resolve() if site_root is not None else None
    if source is None:
        if _site_root is None:
            raise ValueError("configure(): need a site_root or a source")
        source = FileSource(_site_root)
    _reader = ProfileReader(source)
    log.info("Serving archive from %s", _site_root or source)


def _require_reader() -> ProfileReader:
    if _reader is None:
        raise RuntimeError("Site not configured. Call configure(...) first.")
    return _reader


# ---------- shared look ----------
_STYLE = r"""
:root{
  --bg:#0b0f14; --panel:#0f141b; --ink:#cfd8e3; --muted:#8a94a6;
  --accent:#6ee7ff; --accent-2:#22d3ee; --border:#1c2530; --mark-bg:rgba(110,231,255,.2);
}
*{box-sizing:border-box}
body{ margin:0; background:var(--bg); color:var(--ink);
  font:16px/1.45 system-ui,-apple-system,Segoe UI,Roboto,Ubuntu,"Helvetica Neue",Arial; }
.container{ max-width:880px; margin:24px auto; padding:0 16px; }
.card{ background:var(--panel); border:1px solid var(--border); border-radius:16px; padding:18px; }
h1{ font-size:26px; margin:0 0 8px 0 } h2{ font-size:18px; margin:22px 0 10px 0 }
.muted{ color:var(--muted) }
a{ color:var(--accent); text-decoration:none } a:hover{ text-decoration:underline }
.input input{ width:100%; padding:12px 14px; border-radius:12px; border:1px solid var(--border);
  background:#0b1117; color:var(--ink); outline:none; font-size:16px; }
.input input:focus{ border-color:var(--accent) }
.err{ display:none; margin-top:12px; padding:10px 12px; border-radius:10px;
  background:rgba(255,93,93,.12); border:1px solid rgba(255,93,93,.35); color:#ffb0b0; }
.list{ margin-top:8px; border-radius:12px; border:1px solid var(--border); overflow:clip }
.row{ display:flex; justify-content:space-between; padding:10px 14px; border-top:1px solid var(--border); cursor:pointer }
.row:first-child{ border-top:none } .row.sel,.row:hover{ background:var(--mark-bg) }
.grid{ display:grid; grid-template-columns:repeat(3,1fr); gap:10px }
.stat{ border:1px solid var(--border); border-radius:10px; padding:12px }
.stat b{ display:block; font-size:22px }
.spinner{ display:none; color:var(--muted); font-size:13px; margin-top:6px }
"""

_SEARCH_PAGE = r"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" /><meta name="viewport" content="width=device-width,initial-scale=1" />
<title>User Lookup • Abs0rb.me Archive</title>
<style>{{ style }}</style>
</head>
<body>
  <div class="container">
    <div class="card">
      <h1>User Lookup</h1>
      <p class="muted">Search for any Abs0rb.me user by their username to view their stats and activity.</p>
      <form id="form" class="input" autocomplete="off">
        <input id="q" type="text" placeholder="Username…" autofocus />
      </form>
      <div id="spin" class="spinner">Loading…</div>
      <div id="err" class="err"></div>
      <div id="out" class="list" style="display:none"></div>
    </div>
  </div>
<script>
const MAP = {{ user_map_path|tojson }}, LIMIT = {{ limit }};
const $ = (sel) => document.querySelector(sel);
const q = $("#q"), out = $("#out"), err = $("#err"), spin = $("#spin");

const cache = {};      // bucket -> {username: id}, kept for the page's lifetime
const inflight = {};   // bucket -> true while its fetch is outstanding
let suggestions = [], selected = -1;

function bucketOf(text){ return /^[a-z0-9]/i.test(text) ? text[0].toLowerCase() : null; }
function matches(map, text){
  const needle = text.toLowerCase(), hits = [];
  for (const [name, id] of Object.entries(map)){
    if (name.toLowerCase().startsWith(needle)){ hits.push({name, id}); if (hits.length >= LIMIT) break; }
  }
  return hits;
}
function go(id){ window.location.href = `/users/${id}`; }
function showError(msg){ err.textContent = msg || ""; err.style.display = msg ? "block" : "none"; }
function render(loading){
  spin.style.display = loading ? "block" : "none";
  out.style.display = suggestions.length ? "block" : "none";
  out.innerHTML = "";
  suggestions.forEach((s, i) => {
    const row = document.createElement("div");
    row.className = "row" + (i === selected ? " sel" : "");
    row.innerHTML = `<span></span><span class="muted">#${s.id}</span>`;
    row.firstChild.textContent = s.name;
    row.addEventListener("mousedown", () => go(s.id));
    out.appendChild(row);
  });
}
function publish(map){ suggestions = matches(map, q.value); selected = -1; render(false); }

async function load(bucket){
  inflight[bucket] = true;
  try{
    const resp = await fetch(`${MAP}/${bucket}.json`);
    if (!resp.ok) throw new Error(`HTTP ${resp.status}`);
    cache[bucket] = await resp.json();
    if (bucketOf(q.value) === bucket) publish(cache[bucket]);   // drop stale buckets
  }catch(e){
    if (bucketOf(q.value) === bucket){ suggestions = []; selected = -1; render(false); }
  }finally{
    delete inflight[bucket];
  }
}

q.addEventListener("input", () => {
  showError("");
  const bucket = bucketOf(q.value);
  if (!bucket){ suggestions = []; selected = -1; render(false); return; }
  if (cache[bucket]){ publish(cache[bucket]); return; }
  suggestions = []; selected = -1; render(true);
  if (!inflight[bucket]) load(bucket);
});

q.addEventListener("keydown", (ev) => {
  if (ev.key === "ArrowDown" && selected < suggestions.length - 1){ selected++; render(false); ev.preventDefault(); }
  else if (ev.key === "ArrowUp" && selected > -1){ selected--; render(false); ev.preventDefault(); }
});

$("#form").addEventListener("submit", (ev) => {
  ev.preventDefault();
  if (selected >= 0 && suggestions[selected]) return go(suggestions[selected].id);
  const name = q.value.trim();
  if (!name) return showError("Please enter a username");
  const bucket = bucketOf(name);
  if (!bucket) return showError("Username must start with a letter or number");
  const map = cache[bucket];
  if (!map) return showError("User not found");
  const key = Object.keys(map).find((k) => k.toLowerCase() === name.toLowerCase());
  if (key === undefined) return showError(`User "${name}" not found`);
  showError("");
  go(map[key]);
});
</script>
</body>
</html>
"""

_PROFILE_PAGE = r"""<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" /><meta name="viewport" content="width=device-width,initial-scale=1" />
<title>{% if user %}{{ user.get('display') or user.get('username') }}{% else %}User Not Found{% endif %} • Abs0rb.me Archive</title>
<style>{{ style }}</style>
</head>
<body>
  <div class="container">
    <a href="/users">← Back to Search</a>
    <div class="card" style="margin-top:12px">
    {% if not user %}
      <h1>User Not Found</h1>
      <p class="muted">We couldn't find a user with ID {{ raw_id }} in our archive.</p>
    {% else %}
      <h1>{{ user.get('display') or user.get('username') }}</h1>
      <p class="muted">@{{ user.get('username') }} · Member since {{ user.get('sign_up')|date }}</p>

      <h2>Core Stats</h2>
      <div class="grid">
        <div class="stat"><b>{{ user.get('coins')|number }}</b>Coins</div>
        <div class="stat"><b>{{ user.get('views')|number }}</b>Account Views</div>
        <div class="stat"><b>{{ user.get('total_xp')|level }}</b>Level</div>
        <div class="stat"><b>{{ user.get('total_xp')|number }}</b>Total XP</div>
        <div class="stat"><b>{{ totals.get('days_played')|number }}</b>Days Played</div>
        <div class="stat"><b>{{ totals.get('items_owned')|number }}</b>Items Owned</div>
      </div>

      <h2>Activity Timeline</h2>
      <div class="grid">
        <div class="stat"><b>{{ user.get('sign_up')|date }}</b>Signed Up</div>
        <div class="stat"><b>{{ activity.get('first_game_time')|date }}</b>First Game</div>
        <div class="stat"><b>{{ activity.get('last_game_time')|date }}</b>Last Game</div>
        <div class="stat"><b>{{ activity.get('first_chat_time')|date }}</b>First Chat</div>
        <div class="stat"><b>{{ activity.get('last_chat_time')|date }}</b>Last Chat</div>
        <div class="stat"><b>{{ user.get('alive_seconds')|duration }}</b>Time Alive</div>
      </div>
    {% endif %}
    </div>
  </div>
</body>
</html>
"""


async def _load_user(raw_id: str) -> dict | None:
    try:
        return await _require_reader().get_user(parse_user_id(raw_id))
    except (ValidationError, NotFoundError) as exc:
        log.info("Profile %r: %s", raw_id, exc)
        return None


# ---------- API ----------
@app.get("/health")
def health():
    return jsonify({"ok": _reader is not None})


@app.get("/api/locate/<raw_id>")
def api_locate(raw_id: str):
    try:
        user_id = parse_user_id(raw_id)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(asdict(locate(user_id)))


@app.get("/api/users/<raw_id>")
async def api_user(raw_id: str):
    record = await _load_user(raw_id)
    if record is None:
        return jsonify({"error": "User not found"}), 404
    return jsonify(record)


@app.get("/data/<path:path>")
def data_file(path: str):
    if _site_root is None:
        abort(404)
    return send_from_directory(_site_root / "data", path, mimetype="application/json")


# ---------- UI ----------
@app.get("/")
@app.get("/users")
def search_page():
    html = render_template_string(
        _SEARCH_PAGE, style=_STYLE, user_map_path=CFG.USER_MAP_PATH, limit=CFG.SUGGESTION_LIMIT,
    )
    return Response(html, mimetype="text/html")


@app.get("/users/<raw_id>")
async def profile_page(raw_id: str):
    record = await _load_user(raw_id)
    if record is None:
        return render_template_string(_PROFILE_PAGE, style=_STYLE, user=None, raw_id=raw_id), 404
    return render_template_string(
        _PROFILE_PAGE,
        style=_STYLE,
        user=record.get("user") or {},
        totals=record.get("totals") or {},
        activity=record.get("activity") or {},
        raw_id=raw_id,
    )


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Serve the Abs0rb.me archive with Flask")
    ap.add_argument("--root", default=None, help="Site root holding data/ (served under /data)")
    ap.add_argument("--source", default=None, help="Read records from another archive (https://host, file:///site)")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    if args.verbose or CFG.VERBOSE:
        logging.basicConfig(level=logging.INFO)

    root = args.root
    if root is None and args.source is None:
        root = CFG.SOURCE_DSN.removeprefix("file://")
    configure(root, source=make_source(args.source) if args.source else None)

    app.run(host=args.host, port=args.port, debug=args.verbose)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
