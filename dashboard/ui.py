"""
Mission Control single-page dashboard.

Plain HTML + JS served from ``/``. The page polls the JSON API on a fixed
interval and re-renders; there is no server push.
"""

POLL_PLACEHOLDER = "__POLL_INTERVAL_MS__"


def render_dashboard(poll_interval_ms: int = 5000) -> str:
    """Dashboard HTML with the polling interval filled in."""
    return DASHBOARD_HTML.replace(POLL_PLACEHOLDER, str(int(poll_interval_ms)))


DASHBOARD_HTML = """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Mission Control</title>
    <link href="https://fonts.googleapis.com/css2?family=JetBrains+Mono:wght@400;600&family=Space+Grotesk:wght@400;500;600;700&display=swap" rel="stylesheet">
    <style>
        :root {
            --bg-primary: #0a0a0f;
            --bg-secondary: #12121a;
            --bg-card: #1a1a24;
            --bg-card-hover: #22222e;
            --text-primary: #e8e8ed;
            --text-secondary: #8b8b9e;
            --text-muted: #5a5a6e;
            --accent-green: #00ff88;
            --accent-blue: #00a8ff;
            --accent-purple: #a855f7;
            --accent-orange: #ff6b35;
            --accent-yellow: #ffd32a;
            --accent-red: #ff4757;
            --border-color: #2a2a3a;
        }

        * { margin: 0; padding: 0; box-sizing: border-box; }

        body {
            font-family: 'Space Grotesk', sans-serif;
            background: var(--bg-primary);
            color: var(--text-primary);
            min-height: 100vh;
        }

        .container { max-width: 1600px; margin: 0 auto; padding: 24px; }

        header {
            display: flex;
            justify-content: space-between;
            align-items: center;
            padding: 20px 0;
            border-bottom: 1px solid var(--border-color);
            margin-bottom: 24px;
        }

        header h1 {
            font-size: 24px;
            font-weight: 700;
            background: linear-gradient(135deg, var(--accent-green), var(--accent-blue));
            -webkit-background-clip: text;
            -webkit-text-fill-color: transparent;
        }

        .control-btn {
            padding: 8px 16px;
            border: none;
            border-radius: 8px;
            font-size: 14px;
            font-weight: 600;
            cursor: pointer;
            background: var(--accent-green);
            color: #000;
        }
        .control-btn.secondary { background: var(--bg-card); color: var(--text-primary); border: 1px solid var(--border-color); }
        .control-btn.danger { background: var(--accent-red); color: #fff; }
        .control-btn.small { padding: 4px 10px; font-size: 12px; }

        .stats { display: grid; grid-template-columns: repeat(4, 1fr); gap: 16px; margin-bottom: 24px; }
        .stat-card { background: var(--bg-card); border: 1px solid var(--border-color); border-radius: 12px; padding: 16px; }
        .stat-value { font-size: 28px; font-weight: 700; font-family: 'JetBrains Mono', monospace; }
        .stat-label { color: var(--text-secondary); font-size: 13px; }

        nav.tabs { display: flex; gap: 24px; border-bottom: 1px solid var(--border-color); margin-bottom: 24px; }
        nav.tabs button {
            background: none; border: none; color: var(--text-secondary);
            padding: 12px 4px; font-size: 15px; cursor: pointer; text-transform: capitalize;
        }
        nav.tabs button.active { color: var(--accent-blue); border-bottom: 2px solid var(--accent-blue); }

        .panel { display: none; }
        .panel.active { display: block; }

        .grid-2 { display: grid; grid-template-columns: 1fr 1fr; gap: 24px; }
        .card { background: var(--bg-card); border: 1px solid var(--border-color); border-radius: 12px; padding: 16px; }
        .card h3 { font-size: 15px; margin-bottom: 12px; display: flex; justify-content: space-between; align-items: center; }

        .row {
            display: flex; justify-content: space-between; align-items: center;
            padding: 10px 0; border-bottom: 1px solid var(--border-color);
        }
        .row:last-child { border-bottom: none; }
        .muted { color: var(--text-muted); font-size: 12px; }

        .badge { padding: 2px 8px; border-radius: 10px; font-size: 11px; font-weight: 600; }
        .badge-idle { background: rgba(139,139,158,0.2); color: var(--text-secondary); }
        .badge-pending { background: rgba(255,211,42,0.15); color: var(--accent-yellow); }
        .badge-working { background: rgba(0,255,136,0.15); color: var(--accent-green); }
        .badge-error { background: rgba(255,71,87,0.15); color: var(--accent-red); }
        .badge-terminated { background: rgba(90,90,110,0.3); color: var(--text-muted); }
        .badge-critical { background: rgba(255,71,87,0.15); color: var(--accent-red); }
        .badge-high { background: rgba(255,107,53,0.15); color: var(--accent-orange); }
        .badge-medium { background: rgba(255,211,42,0.15); color: var(--accent-yellow); }
        .badge-low { background: rgba(0,168,255,0.15); color: var(--accent-blue); }
        .badge-unread { background: rgba(168,85,247,0.15); color: var(--accent-purple); }

        .kanban { display: grid; grid-template-columns: repeat(4, 1fr); gap: 16px; }
        .column { background: var(--bg-secondary); border-radius: 12px; padding: 12px; min-height: 300px; }
        .column h4 { font-size: 13px; color: var(--text-secondary); margin-bottom: 12px; text-transform: uppercase; }
        .task-card { background: var(--bg-card); border: 1px solid var(--border-color); border-radius: 8px; padding: 10px; margin-bottom: 8px; }
        .task-card select { margin-top: 8px; width: 100%; }

        .modal-backdrop {
            display: none; position: fixed; inset: 0; background: rgba(0,0,0,0.6);
            align-items: center; justify-content: center; z-index: 50;
        }
        .modal-backdrop.open { display: flex; }
        .modal { background: var(--bg-card); border: 1px solid var(--border-color); border-radius: 12px; padding: 24px; width: 420px; }
        .modal h3 { margin-bottom: 16px; }
        .modal label { display: block; font-size: 13px; color: var(--text-secondary); margin: 12px 0 4px; }
        input, textarea, select {
            width: 100%; padding: 8px; border-radius: 8px; border: 1px solid var(--border-color);
            background: var(--bg-secondary); color: var(--text-primary); font-family: inherit;
        }
        .modal .actions { display: flex; gap: 12px; margin-top: 20px; }
        .modal .actions button { flex: 1; }

        #toast { position: fixed; bottom: 24px; right: 24px; padding: 12px 16px; border-radius: 8px; display: none; }
        #toast.error { display: block; background: var(--accent-red); color: #fff; }
        #toast.ok { display: block; background: var(--accent-green); color: #000; }
    </style>
</head>
<body>
    <div class="container">
        <header>
            <h1>Mission Control</h1>
            <div>
                <button class="control-btn secondary" onclick="openModal('taskModal')">New Task</button>
                <button class="control-btn" onclick="openModal('agentModal')">Spawn Agent</button>
            </div>
        </header>

        <div class="stats">
            <div class="stat-card"><div class="stat-value" id="statAgents">0</div><div class="stat-label">Agents</div></div>
            <div class="stat-card"><div class="stat-value" id="statWorking">0</div><div class="stat-label">Working</div></div>
            <div class="stat-card"><div class="stat-value" id="statBacklog">0</div><div class="stat-label">Backlog</div></div>
            <div class="stat-card"><div class="stat-value" id="statUnread">0</div><div class="stat-label">Unread Reports</div></div>
        </div>

        <nav class="tabs" id="tabs">
            <button data-tab="overview" class="active">overview</button>
            <button data-tab="agents">agents</button>
            <button data-tab="tasks">tasks</button>
            <button data-tab="reports">reports</button>
            <button data-tab="projects">projects</button>
        </nav>

        <section class="panel active" id="panel-overview">
            <div class="grid-2">
                <div class="card"><h3>Active Agents</h3><div id="overviewAgents"></div></div>
                <div class="card"><h3>Recent Tasks</h3><div id="overviewTasks"></div></div>
            </div>
        </section>

        <section class="panel" id="panel-agents">
            <div class="card"><h3>Agents</h3><div id="agentList"></div></div>
        </section>

        <section class="panel" id="panel-tasks">
            <div class="kanban" id="kanban"></div>
        </section>

        <section class="panel" id="panel-reports">
            <div class="card"><h3>Reports</h3><div id="reportList"></div></div>
        </section>

        <section class="panel" id="panel-projects">
            <div class="card">
                <h3>Projects <button class="control-btn small" onclick="syncGithub()">Sync GitHub</button></h3>
                <div id="projectList"></div>
            </div>
        </section>
    </div>

    <div class="modal-backdrop" id="agentModal">
        <div class="modal">
            <h3>Spawn New Agent</h3>
            <label>Agent Name</label>
            <input id="agentName" placeholder="e.g., Frontend-Dev-1">
            <label>Initial Task (optional)</label>
            <textarea id="agentTask" rows="3" placeholder="e.g., Build login page with OAuth"></textarea>
            <label><input type="checkbox" id="agentRemote" style="width:auto"> Start a remote session</label>
            <div class="actions">
                <button class="control-btn secondary" onclick="closeModal('agentModal')">Cancel</button>
                <button class="control-btn" onclick="spawnAgent()">Spawn Agent</button>
            </div>
        </div>
    </div>

    <div class="modal-backdrop" id="taskModal">
        <div class="modal">
            <h3>New Task</h3>
            <label>Title</label>
            <input id="taskTitle">
            <label>Description</label>
            <textarea id="taskDescription" rows="3"></textarea>
            <label>Priority</label>
            <select id="taskPriority">
                <option value="critical">critical</option>
                <option value="high">high</option>
                <option value="medium" selected>medium</option>
                <option value="low">low</option>
            </select>
            <label>Assign to</label>
            <select id="taskAssignee"></select>
            <div class="actions">
                <button class="control-btn secondary" onclick="closeModal('taskModal')">Cancel</button>
                <button class="control-btn" onclick="createTask()">Create</button>
            </div>
        </div>
    </div>

    <div id="toast"></div>

    <script>
        const POLL_INTERVAL_MS = __POLL_INTERVAL_MS__;
        const TASK_COLUMNS = ['backlog', 'in-progress', 'review', 'completed'];
        let state = { agents: [], tasks: [], reports: [], projects: [] };

        function esc(value) {
            return String(value ?? '').replace(/[&<>"']/g, c => ({
                '&': '&amp;', '<': '&lt;', '>': '&gt;', '"': '&quot;', "'": '&#39;'
            })[c]);
        }

        function badge(value) {
            return `<span class="badge badge-${esc(value)}">${esc(value)}</span>`;
        }

        function toast(message, kind) {
            const el = document.getElementById('toast');
            el.textContent = message;
            el.className = kind;
            setTimeout(() => { el.className = ''; }, 4000);
        }

        async function api(method, path, body) {
            const options = { method, headers: { 'Content-Type': 'application/json' } };
            if (body !== undefined) options.body = JSON.stringify(body);
            const res = await fetch(path, options);
            const data = await res.json().catch(() => ({}));
            if (!res.ok) throw new Error(data.error || `HTTP ${res.status}`);
            return data;
        }

        async function loadData() {
            try {
                const [agents, tasks, reports, projects] = await Promise.all([
                    api('GET', '/api/agents'),
                    api('GET', '/api/tasks'),
                    api('GET', '/api/reports?limit=50'),
                    api('GET', '/api/projects'),
                ]);
                state = {
                    agents: agents.agents || [],
                    tasks: tasks.tasks || [],
                    reports: reports.reports || [],
                    projects: projects.projects || [],
                };
                render();
            } catch (err) {
                console.error('Failed to load data:', err);
            }
        }

        function render() {
            const { agents, tasks, reports, projects } = state;
            document.getElementById('statAgents').textContent = agents.length;
            document.getElementById('statWorking').textContent = agents.filter(a => a.status === 'working').length;
            document.getElementById('statBacklog').textContent = tasks.filter(t => t.status === 'backlog').length;
            document.getElementById('statUnread').textContent = reports.filter(r => r.status === 'unread').length;

            const live = agents.filter(a => a.status !== 'terminated');
            document.getElementById('overviewAgents').innerHTML = live.slice(0, 8).map(a => `
                <div class="row"><div>${esc(a.name)}<div class="muted">${esc(a.current_task || 'No task')}</div></div>${badge(a.status)}</div>
            `).join('') || '<div class="muted">No agents</div>';

            document.getElementById('overviewTasks').innerHTML = tasks.slice(0, 5).map(t => `
                <div class="row"><div>${esc(t.title)}<div class="muted">${esc(t.assigned_name || 'Unassigned')}</div></div>${badge(t.priority)}</div>
            `).join('') || '<div class="muted">No tasks</div>';

            document.getElementById('agentList').innerHTML = agents.map(a => `
                <div class="row">
                    <div>${esc(a.name)} ${badge(a.status)}
                        <div class="muted">${esc(a.model)} &middot; ${a.active_tasks} active task(s) &middot; ${a.unread_reports} unread &middot; last ping ${esc(a.last_ping)}</div>
                    </div>
                    ${a.status !== 'terminated'
                        ? `<button class="control-btn small danger" onclick="killAgent('${esc(a.id)}')">Terminate</button>`
                        : ''}
                </div>
            `).join('') || '<div class="muted">No agents</div>';

            document.getElementById('kanban').innerHTML = TASK_COLUMNS.map(column => `
                <div class="column">
                    <h4>${column} (${tasks.filter(t => t.status === column).length})</h4>
                    ${tasks.filter(t => t.status === column).map(t => `
                        <div class="task-card">
                            <div>${esc(t.title)}</div>
                            <div class="muted">${badge(t.priority)} ${esc(t.assigned_name || 'Unassigned')}</div>
                            <select onchange="moveTask('${esc(t.id)}', this.value)">
                                ${TASK_COLUMNS.map(s => `<option value="${s}" ${s === t.status ? 'selected' : ''}>${s}</option>`).join('')}
                            </select>
                        </div>
                    `).join('')}
                </div>
            `).join('');

            document.getElementById('reportList').innerHTML = reports.map(r => `
                <div class="row">
                    <div>${esc(r.title)} ${badge(r.type)} ${r.status === 'unread' ? badge('unread') : ''}
                        <div class="muted">${esc(r.agent_name || r.agent_id)}${r.task_title ? ' &middot; ' + esc(r.task_title) : ''} &middot; ${esc(r.created_at)}</div>
                        <div>${esc(r.content)}</div>
                    </div>
                    ${r.status === 'unread'
                        ? `<button class="control-btn small secondary" onclick="markReport('${esc(r.id)}', 'read')">Mark read</button>`
                        : `<button class="control-btn small secondary" onclick="markReport('${esc(r.id)}', 'archived')">Archive</button>`}
                </div>
            `).join('') || '<div class="muted">No reports</div>';

            document.getElementById('projectList').innerHTML = projects.map(p => `
                <div class="row">
                    <div>${esc(p.name)} ${badge(p.status)}
                        <div class="muted">${esc(p.github_repo || '')} &middot; ${p.pending_tasks} open / ${p.tasks.length} task(s)</div>
                        <div class="muted">${esc(p.description)}</div>
                    </div>
                </div>
            `).join('') || '<div class="muted">No projects</div>';

            const assignee = document.getElementById('taskAssignee');
            const selected = assignee.value;
            assignee.innerHTML = '<option value="">Unassigned</option>' + live.map(a =>
                `<option value="${esc(a.id)}">${esc(a.name)}</option>`).join('');
            assignee.value = selected;
        }

        function openModal(id) { document.getElementById(id).classList.add('open'); }
        function closeModal(id) { document.getElementById(id).classList.remove('open'); }

        async function spawnAgent() {
            const task = document.getElementById('agentTask').value.trim();
            try {
                await api('POST', '/api/agents', {
                    name: document.getElementById('agentName').value.trim() || `Agent-${Date.now()}`,
                    task: task || undefined,
                    remote: document.getElementById('agentRemote').checked,
                });
                closeModal('agentModal');
                document.getElementById('agentName').value = '';
                document.getElementById('agentTask').value = '';
                toast('Agent created', 'ok');
            } catch (err) {
                toast(err.message, 'error');
            }
            loadData();
        }

        async function killAgent(id) {
            if (!confirm('Terminate this agent?')) return;
            try {
                await api('DELETE', `/api/agents?id=${encodeURIComponent(id)}`);
            } catch (err) {
                toast(err.message, 'error');
            }
            loadData();
        }

        async function createTask() {
            try {
                await api('POST', '/api/tasks', {
                    title: document.getElementById('taskTitle').value.trim(),
                    description: document.getElementById('taskDescription').value,
                    priority: document.getElementById('taskPriority').value,
                    assigned_to: document.getElementById('taskAssignee').value || null,
                });
                closeModal('taskModal');
                document.getElementById('taskTitle').value = '';
                document.getElementById('taskDescription').value = '';
            } catch (err) {
                toast(err.message, 'error');
            }
            loadData();
        }

        async function moveTask(id, status) {
            try {
                await api('PATCH', '/api/tasks', { id, status });
            } catch (err) {
                toast(err.message, 'error');
            }
            loadData();
        }

        async function markReport(id, status) {
            try {
                await api('PATCH', '/api/reports', { id, status });
            } catch (err) {
                toast(err.message, 'error');
            }
            loadData();
        }

        async function syncGithub() {
            try {
                const data = await api('POST', '/api/sync-github');
                toast(data.message, 'ok');
            } catch (err) {
                toast(err.message, 'error');
            }
            loadData();
        }

        document.querySelectorAll('#tabs button').forEach(button => {
            button.addEventListener('click', () => {
                document.querySelectorAll('#tabs button').forEach(b => b.classList.remove('active'));
                document.querySelectorAll('.panel').forEach(p => p.classList.remove('active'));
                button.classList.add('active');
                document.getElementById('panel-' + button.dataset.tab).classList.add('active');
            });
        });

        loadData();
        setInterval(loadData, POLL_INTERVAL_MS);
    </script>
</body>
</html>
"""
