"""Minimal HTML client for /ws/logs: level selector, refresh-rate input, live table."""

from fastapi import APIRouter
from fastapi.responses import HTMLResponse

router = APIRouter()

_PAGE = """<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>loggery</title>
<style>
  body { font: 13px monospace; margin: 0; }
  header { position: sticky; top: 0; background: #eee; padding: 6px; }
  #log div { padding: 1px 6px; white-space: pre-wrap; }
  .TRACE { color: #999; } .DEBUG { color: #468; } .INFO { color: #222; }
  .WARN { color: #a60; } .ERROR { color: #c00; font-weight: bold; }
</style>
</head>
<body>
<header>
  level <select id="level">
    <option>TRACE</option><option>DEBUG</option><option>INFO</option><option>WARN</option><option>ERROR</option>
  </select>
  refresh ms <input id="refresh" type="number" value="1000" min="200" step="100">
  <span id="status">connecting</span>
</header>
<div id="log"></div>
<script>
const log = document.getElementById("log");
const status = document.getElementById("status");
const level = document.getElementById("level");
const refresh = document.getElementById("refresh");
const proto = location.protocol === "https:" ? "wss" : "ws";
const ws = new WebSocket(`${proto}://${location.host}/ws/logs?min_level=TRACE&refresh_ms=${refresh.value}`);

ws.onmessage = (ev) => {
  const frame = JSON.parse(ev.data);
  if (frame.type === "error") { status.textContent = "rejected control frame"; return; }
  if (frame.status === 2) { status.textContent = `terminated: ${frame.reason}`; return; }
  status.textContent = `cursor ${frame.cursor}`;
  for (const r of frame.records) {
    const row = document.createElement("div");
    row.className = r.level;
    row.textContent = `${new Date(r.timestamp).toISOString()} [${r.level}] ${r.message}`;
    log.appendChild(row);
  }
  if (frame.records.length) window.scrollTo(0, document.body.scrollHeight);
};
ws.onclose = () => { status.textContent += " (closed)"; };
level.onchange = () => ws.send(JSON.stringify({min_level: level.value}));
refresh.onchange = () => ws.send(JSON.stringify({refresh_ms: Number(refresh.value)}));
setInterval(() => ws.readyState === 1 && ws.send(JSON.stringify({type: "ping"})), 30000);
</script>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def viewer_page() -> HTMLResponse:
    return HTMLResponse(_PAGE)
