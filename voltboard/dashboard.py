"""대시보드 HTML 빌더: 리소스 차트 + 태스크 테이블 + 모달"""

from __future__ import annotations

from voltboard.theme import wrap_html

_EXTRA_CSS = """
/* Layout */
.top-bar {
    display: flex; justify-content: space-between; align-items: center;
    padding: 14px 24px; background: #1a1d27; border-radius: 12px; margin-bottom: 16px;
}
.top-bar h1 { font-size: 22px; color: #fff; }
.live-dot { width: 10px; height: 10px; border-radius: 50%; display: inline-block; margin-left: 8px; background: #666; }
.live-dot.on { background: #22c55e; }

.btn { border: none; border-radius: 8px; padding: 8px 18px; font-size: 13px; font-weight: 600; cursor: pointer; transition: 0.2s; }
.btn-red { background: #ef4444; color: #fff; }
.btn-red:hover { background: #dc2626; }
.btn-blue { background: #3b82f6; color: #fff; }
.btn-blue:hover { background: #2563eb; }
.btn-gray { background: #374151; color: #e0e0e0; }
.btn-gray:hover { background: #4b5563; }
.btn-sm { padding: 4px 10px; font-size: 11px; }

/* ── Resource charts ── */
.charts { display: grid; grid-template-columns: repeat(3, 1fr); gap: 12px; }
@media (max-width: 900px) { .charts { grid-template-columns: 1fr; } }
.chart-card { background: var(--bg-panel); border-radius: 12px; padding: 16px; text-align: center; }
.chart-card h3 { font-size: 13px; color: var(--text-secondary); margin-bottom: 8px; text-transform: uppercase; }
.chart-card canvas { max-height: 180px; }
.chart-caption { font-size: 12px; color: var(--text-tertiary); margin-top: 8px; }

/* Task state badges */
.state-TASK_STAGING, .state-TASK_STARTING { background: rgba(59,130,246,0.15); color: #60a5fa; }
.state-TASK_RUNNING { background: rgba(167,139,250,0.15); color: #a78bfa; }
.state-TASK_FINISHED { background: rgba(34,197,94,0.15); color: #22c55e; }
.state-TASK_FAILED, .state-TASK_LOST, .state-TASK_ERROR { background: rgba(239,68,68,0.15); color: #f87171; }
.state-TASK_KILLED { background: #374151; color: #9ca3af; }
.file-link { color: var(--accent); cursor: pointer; margin-right: 6px; font-size: 12px; }
.empty-row { color: #555; font-style: italic; text-align: center; }

/* ── Modal ── */
.modal-overlay {
    position: fixed; inset: 0; background: rgba(0,0,0,0.6); z-index: 900;
    display: none; align-items: center; justify-content: center;
}
.modal-overlay.open { display: flex; }
.modal { background: #1a1d27; border-radius: 12px; padding: 20px; width: min(640px, 92vw); border: 1px solid #374151; }
.modal h2 { font-size: 16px; color: #fff; margin-bottom: 12px; }
.modal label { display: block; font-size: 12px; color: #888; margin: 8px 0 4px; }
.modal input {
    width: 100%; background: #252830; border: 1px solid #374151; border-radius: 8px; padding: 8px 12px;
    color: #e0e0e0; font-size: 13px; font-family: inherit;
}
.modal-actions { display: flex; justify-content: flex-end; gap: 8px; margin-top: 16px; }
.file-content {
    background: #0d0f14; padding: 12px; border-radius: 8px; max-height: 60vh; overflow: auto;
    font-family: 'SF Mono', 'Fira Code', monospace; font-size: 11px; line-height: 1.6; white-space: pre-wrap;
}
.file-content.error { color: #f87171; }

/* Toast */
.toast-container {
    position: fixed; bottom: 24px; right: 24px; z-index: 1000;
    display: flex; flex-direction: column-reverse; gap: 8px; pointer-events: none;
}
.toast {
    background: #1a1d27; border: 1px solid #374151; border-radius: 10px;
    padding: 12px 20px; font-size: 13px; color: #e0e0e0; pointer-events: auto;
}
.toast-success { border-left: 3px solid #22c55e; }
.toast-error { border-left: 3px solid #ef4444; }
"""

_BODY = """
<div class="container">
    <div class="top-bar">
        <div style="display:flex;align-items:center;gap:8px;">
            <h1>Volt</h1>
            <span id="liveDot" class="live-dot"></span>
        </div>
        <button class="btn btn-blue" id="btnNewTask" onclick="openEditor()">+ New Task</button>
    </div>

    <div class="section">
        <h2>Cluster Resources</h2>
        <div class="charts">
            <div class="chart-card"><h3>CPUs</h3><canvas id="cpusChart"></canvas><div class="chart-caption" id="cpusCaption">-</div></div>
            <div class="chart-card"><h3>Memory</h3><canvas id="memChart"></canvas><div class="chart-caption" id="memCaption">-</div></div>
            <div class="chart-card"><h3>Disk</h3><canvas id="diskChart"></canvas><div class="chart-caption" id="diskCaption">-</div></div>
        </div>
    </div>

    <div class="section">
        <h2>Tasks <span id="taskCount" style="color:#666;font-size:13px;"></span></h2>
        <div class="table-wrap">
            <table>
                <thead><tr><th>ID</th><th>Image</th><th>Command</th><th>CPUs</th><th>Mem</th><th>Disk</th><th>State</th><th>Files</th><th></th></tr></thead>
                <tbody id="taskTable"><tr><td colspan="9" class="empty-row">No tasks</td></tr></tbody>
            </table>
        </div>
    </div>
</div>

<!-- New task dialog -->
<div class="modal-overlay" id="editorModal">
    <div class="modal">
        <h2>New Task</h2>
        <label>CPUs</label><input id="draftCpus" type="number" step="0.1" min="0">
        <label>Memory (MB)</label><input id="draftMem" type="number" min="0">
        <label>Disk (MB)</label><input id="draftDisk" type="number" min="0">
        <label>Docker image</label><input id="draftImage">
        <label>Command</label><input id="draftCmd" onkeydown="if(event.key==='Enter')sendTask()">
        <div class="modal-actions">
            <button class="btn btn-gray btn-sm" onclick="closeEditor()">Cancel</button>
            <button class="btn btn-blue btn-sm" onclick="sendTask()">Send</button>
        </div>
    </div>
</div>

<!-- File dialog -->
<div class="modal-overlay" id="fileModal">
    <div class="modal">
        <h2 id="fileTitle">File</h2>
        <pre class="file-content" id="fileContent"></pre>
        <div class="modal-actions">
            <button class="btn btn-gray btn-sm" onclick="refreshFile()">Refresh</button>
            <button class="btn btn-blue btn-sm" onclick="closeFile()">Close</button>
        </div>
    </div>
</div>

<div class="toast-container" id="toastContainer"></div>
"""

_JS = r"""
const CHART_OPTIONS = {animation: false, plugins: {tooltip: {enabled: false}, legend: {display: false}}};
const charts = {};
let eventSource = null;
let viewerId = null;

// ── Charts ──

function drawChart(key, used, total, unit) {
    const free = Math.max(total - used, 0);
    const data = {labels: ['used', 'free'], datasets: [{data: [used, free], backgroundColor: ['#FF0000', '#00FF00'], borderWidth: 0}]};
    if(charts[key]) {
        charts[key].data = data;
        charts[key].update();
    } else if(window.Chart) {
        charts[key] = new Chart(document.getElementById(key + 'Chart'), {type: 'doughnut', data: data, options: CHART_OPTIONS});
    }
    document.getElementById(key + 'Caption').textContent = `${fmt(used)} / ${fmt(total)} ${unit}`;
}

function renderMetrics(m) {
    if(!m) return;
    drawChart('cpus', m.used_cpus, m.total_cpus, '');
    drawChart('mem', m.used_mem, m.total_mem, 'MB');
    drawChart('disk', m.used_disk, m.total_disk, 'MB');
}

// ── Tasks ──

function renderTasks(collection) {
    if(!collection) return;
    const tasks = collection.tasks || [];
    document.getElementById('taskCount').textContent = `(${tasks.length})`;
    const tbody = document.getElementById('taskTable');
    if(!tasks.length) {
        tbody.innerHTML = '<tr><td colspan="9" class="empty-row">No tasks</td></tr>';
        return;
    }
    tbody.innerHTML = tasks.map(t => {
        const state = t.state || '';
        const id = esc(t.id);
        const files = [...(t.files || []), 'stdout', 'stderr'].map(f =>
            `<span class="file-link" data-action="file" data-task="${id}" data-file="${esc(f)}">${esc(f)}</span>`).join('');
        return `<tr>
            <td>${esc(t.id)}</td><td>${esc(t.docker_image)}</td><td><code>${esc(t.cmd)}</code></td>
            <td>${fmt(t.cpus)}</td><td>${fmt(t.mem)}</td><td>${fmt(t.disk)}</td>
            <td><span class="badge state-${esc(state)}">${esc(state.replace('TASK_', '')) || '-'}</span></td>
            <td>${files}</td>
            <td style="white-space:nowrap;">
                <button class="btn btn-gray btn-sm" data-action="kill" data-task="${id}">Kill</button>
                <button class="btn btn-red btn-sm" data-action="delete" data-task="${id}">Delete</button>
            </td>
        </tr>`;
    }).join('');
}

// task ids and file names stay in data- attributes, never inside inline handlers
function onTaskTableClick(e) {
    const el = e.target.closest('[data-action]');
    if(!el) return;
    const id = el.dataset.task;
    if(el.dataset.action === 'file') openFile(id, el.dataset.file);
    else if(el.dataset.action === 'kill') killTask(id);
    else if(el.dataset.action === 'delete') deleteTask(id);
}

async function killTask(id) {
    const res = await fetch(`/api/tasks/${encodeURIComponent(id)}/kill`, {method:'PUT'});
    showToast(res.ok ? `Kill requested for ${id}` : `Kill failed: ${await errorText(res)}`, res.ok ? 'success' : 'error');
}

async function deleteTask(id) {
    if(!confirm(`Delete task ${id}?`)) return;
    const res = await fetch(`/api/tasks/${encodeURIComponent(id)}`, {method:'DELETE'});
    showToast(res.ok ? `Deleted ${id}` : `Delete failed: ${await errorText(res)}`, res.ok ? 'success' : 'error');
}

// ── New task dialog (state kept server-side) ──

async function openEditor() {
    const res = await fetch('/api/editor/open', {method:'POST'});
    if(!res.ok) { showToast(`Editor unavailable: ${await errorText(res)}`, 'error'); return; }
    const draft = (await res.json()).draft;
    document.getElementById('draftCpus').value = draft.cpus;
    document.getElementById('draftMem').value = draft.mem;
    document.getElementById('draftDisk').value = draft.disk;
    document.getElementById('draftImage').value = draft.docker_image;
    document.getElementById('draftCmd').value = draft.cmd;
    document.getElementById('editorModal').classList.add('open');
}

function hideEditor() {
    document.getElementById('editorModal').classList.remove('open');
}

function closeEditor() {
    if(!document.getElementById('editorModal').classList.contains('open')) return;
    hideEditor();
    fetch('/api/editor/cancel', {method:'POST'});
}

async function sendTask() {
    const fields = {
        cpus: parseFloat(document.getElementById('draftCpus').value),
        mem: parseFloat(document.getElementById('draftMem').value),
        disk: parseFloat(document.getElementById('draftDisk').value),
        docker_image: document.getElementById('draftImage').value,
        cmd: document.getElementById('draftCmd').value,
    };
    const res = await fetch('/api/editor', {method:'PATCH', headers:{'Content-Type':'application/json'}, body:JSON.stringify(fields)});
    if(!res.ok) { showToast(`Invalid task: ${await errorText(res)}`, 'error'); return; }
    hideEditor();
    const sent = await fetch('/api/editor/send', {method:'POST'});
    if(!sent.ok) showToast(`Submit failed: ${await errorText(sent)}`, 'error');
}

function onMutation(result) {
    if(result.action !== 'submit') return;
    showToast(result.ok ? 'Task submitted' : `Submit failed: ${result.error}`, result.ok ? 'success' : 'error');
}

// ── File dialog ──

async function openFile(id, name) {
    if(viewerId) await closeFile();
    document.getElementById('fileTitle').textContent = `${name} @ ${id}`;
    showFile(null);
    document.getElementById('fileModal').classList.add('open');
    const res = await fetch('/api/files', {method:'POST', headers:{'Content-Type':'application/json'}, body:JSON.stringify({task_id:id, file_name:name})});
    if(!res.ok) { showFile({content:'error'}); return; }
    const body = await res.json();
    viewerId = body.viewer_id;
    showFile(body.view);
}

async function refreshFile() {
    if(!viewerId) return;
    const res = await fetch(`/api/files/${viewerId}/refresh`, {method:'POST'});
    if(res.ok) showFile(await res.json());
}

async function closeFile() {
    document.getElementById('fileModal').classList.remove('open');
    const id = viewerId;
    viewerId = null;
    if(id) await fetch(`/api/files/${id}`, {method:'DELETE'});
}

function showFile(view) {
    const el = document.getElementById('fileContent');
    const content = view && view.content !== null ? view.content : 'loading...';
    el.textContent = content;
    el.classList.toggle('error', content === 'error');
}

// ── Live updates ──

function ensureSSE() {
    if(eventSource) return;
    eventSource = new EventSource('/api/events');
    eventSource.addEventListener('metrics', e => { try { renderMetrics(JSON.parse(e.data)); } catch(err) {} });
    eventSource.addEventListener('tasks', e => { try { renderTasks(JSON.parse(e.data)); } catch(err) {} });
    eventSource.addEventListener('mutation', e => { try { onMutation(JSON.parse(e.data)); } catch(err) {} });
    eventSource.onopen = () => document.getElementById('liveDot').classList.add('on');
    eventSource.onerror = () => {
        document.getElementById('liveDot').classList.remove('on');
        eventSource.close();
        eventSource = null;
        setTimeout(ensureSSE, 3000);
    };
}

async function loadState() {
    try {
        const res = await fetch('/api/state');
        const state = await res.json();
        renderMetrics(state.metrics);
        renderTasks(state.tasks);
    } catch(err) {}
}

// ── Utils ──

async function errorText(res) {
    try {
        const body = await res.json();
        if(Array.isArray(body.detail)) return body.detail.map(d => d.msg).join('; ');
        return body.detail || res.statusText;
    } catch(err) { return res.statusText; }
}

function showToast(msg, type) {
    const container = document.getElementById('toastContainer');
    const el = document.createElement('div');
    el.className = 'toast toast-' + (type || 'success');
    el.textContent = msg;
    container.appendChild(el);
    while(container.children.length > 3) container.removeChild(container.firstChild);
    setTimeout(() => { if(el.parentNode) el.parentNode.removeChild(el); }, type === 'error' ? 8000 : 4000);
}

function fmt(n) { return (n === null || n === undefined) ? '-' : (+n).toLocaleString(undefined, {maximumFractionDigits: 2}); }

const ESCAPES = {'&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;'};
function esc(s) { return (s === null || s === undefined ? '' : String(s)).replace(/[&<>"']/g, c => ESCAPES[c]); }

document.addEventListener('keydown', e => { if(e.key === 'Escape') { closeEditor(); closeFile(); } });

// ── Init ──
document.getElementById('taskTable').addEventListener('click', onTaskTableClick);
loadState();
ensureSSE();
"""


def build_dashboard_html() -> str:
    return wrap_html(
        title="Volt",
        body=_BODY,
        extra_css=_EXTRA_CSS,
        extra_js=_JS,
        include_chartjs=True,
    )
