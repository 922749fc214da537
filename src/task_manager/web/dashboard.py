"""Dashboard HTML with inline CSS and vanilla JS."""


def get_dashboard_html() -> str:
    return """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>Task Manager</title>
<style>
  :root {
    --bg: #0d1117; --surface: #161b22; --border: #30363d;
    --text: #e6edf3; --text-muted: #8b949e; --text-dim: #6e7681;
    --todo: #8b949e; --in_progress: #58a6ff; --in_review: #d2a8ff;
    --done: #3fb950; --blocked: #f85149; --cancelled: #6e7681;
    --critical: #f85149; --high: #d29922; --medium: #58a6ff; --low: #8b949e;
  }
  * { margin: 0; padding: 0; box-sizing: border-box; }
  body { font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Helvetica, Arial, sans-serif;
         background: var(--bg); color: var(--text); line-height: 1.5; }
  .container { max-width: 960px; margin: 0 auto; padding: 24px 16px; }

  header { display: flex; justify-content: space-between; align-items: center;
           padding-bottom: 16px; border-bottom: 1px solid var(--border); margin-bottom: 24px; }
  header h1 { font-size: 20px; font-weight: 600; }
  header select, .filter select { background: var(--surface); color: var(--text);
           border: 1px solid var(--border); padding: 6px 12px; border-radius: 6px; font-size: 14px; }

  .project-info { background: var(--surface); border: 1px solid var(--border);
                  border-radius: 8px; padding: 16px; margin-bottom: 20px; }
  .project-info h2 { font-size: 16px; margin-bottom: 4px; }
  .project-meta { font-size: 13px; color: var(--text-muted); }
  .project-meta code { background: var(--bg); padding: 2px 6px; border-radius: 4px; font-size: 12px; }

  .summary { display: flex; gap: 14px; align-items: center; margin-bottom: 20px; flex-wrap: wrap; }
  .stat { display: flex; align-items: center; gap: 6px; font-size: 13px; }
  .dot { width: 10px; height: 10px; border-radius: 50%; display: inline-block; }
  .progress-bar { flex: 1; min-width: 120px; height: 8px; background: var(--surface);
                  border-radius: 4px; overflow: hidden; border: 1px solid var(--border); }
  .progress-bar .fill { height: 100%; background: var(--done); transition: width 0.3s; }
  .progress-pct { font-size: 13px; color: var(--text-muted); min-width: 40px; }

  .filter { display: flex; justify-content: space-between; align-items: center;
            margin-bottom: 12px; font-size: 12px; color: var(--text-dim); }

  .task-list { display: flex; flex-direction: column; gap: 2px; }
  .task-card { background: var(--surface); border: 1px solid var(--border);
               border-radius: 8px; padding: 12px 16px; border-left-width: 3px; }
  .task-header { display: flex; align-items: center; gap: 10px; flex-wrap: wrap; }
  .badge { display: inline-block; padding: 2px 10px; border-radius: 12px; font-size: 11px;
           font-weight: 600; text-transform: uppercase; letter-spacing: 0.5px;
           background: rgba(139,148,158,0.15); }
  .task-title { font-weight: 600; font-size: 14px; }
  .task-id { font-size: 12px; color: var(--text-dim); font-family: monospace; }
  .task-details { margin-top: 6px; font-size: 13px; color: var(--text-muted);
                  display: flex; flex-direction: column; gap: 3px; }
  .task-details code { background: var(--bg); padding: 1px 5px; border-radius: 3px; font-size: 12px; }
  .tags { font-size: 12px; color: var(--text-dim); }

  .empty { text-align: center; padding: 48px; color: var(--text-muted); }
  .empty h3 { margin-bottom: 8px; }
</style>
</head>
<body>
<div class="container">
  <header>
    <h1>Task Manager</h1>
    <select id="project-picker"><option value="">Loading...</option></select>
  </header>
  <div id="content">
    <div class="empty"><h3>Select a project</h3><p>Choose a project from the dropdown above.</p></div>
  </div>
</div>

<script>
const STATUSES = ['todo', 'in_progress', 'in_review', 'done', 'blocked', 'cancelled'];
let currentProject = null;
let statusFilter = '';

async function fetchJSON(path) {
  const res = await fetch(path);
  if (!res.ok) return null;
  return res.json();
}

async function loadProjects() {
  const picker = document.getElementById('project-picker');
  const projects = await fetchJSON('/api/projects');
  if (!projects || projects.length === 0) {
    picker.innerHTML = '<option value="">No projects</option>';
    return;
  }
  picker.innerHTML = projects.map(p => `<option value="${esc(p.id)}">${esc(p.name)}</option>`).join('');
  picker.addEventListener('change', () => {
    currentProject = picker.value || null;
    if (currentProject) loadDashboard(currentProject);
  });
  currentProject = projects[0].id;
  loadDashboard(currentProject);
}

async function loadDashboard(projectId) {
  const content = document.getElementById('content');
  const query = statusFilter ? `?status=${statusFilter}` : '';
  const [project, tasks, summary] = await Promise.all([
    fetchJSON(`/api/projects/${projectId}`),
    fetchJSON(`/api/projects/${projectId}/tasks${query}`),
    fetchJSON(`/api/projects/${projectId}/summary`),
  ]);

  if (!project) { content.innerHTML = '<div class="empty"><h3>Project not found</h3></div>'; return; }

  let html = `<div class="project-info">
    <h2>${esc(project.name)}</h2>
    <div class="project-meta">
      ${project.description ? esc(project.description) + ' &middot; ' : ''}
      Path: <code>${esc(project.repo_path)}</code>
    </div>
  </div>`;

  if (summary) {
    html += '<div class="summary">';
    for (const s of STATUSES) {
      html += `<span class="stat"><span class="dot" style="background:var(--${s})"></span>
        ${summary.counts[s]} ${s.replace('_', ' ')}</span>`;
    }
    html += `<div class="progress-bar"><div class="fill" style="width:${summary.progress_pct}%"></div></div>
      <span class="progress-pct">${summary.progress_pct}%</span></div>`;
  }

  html += `<div class="filter">
    <span>${tasks ? tasks.length : 0} task(s)</span>
    <select onchange="statusFilter = this.value; loadDashboard('${esc(projectId)}')">
      <option value="">All statuses</option>
      ${STATUSES.map(s => `<option value="${s}" ${s === statusFilter ? 'selected' : ''}>${s}</option>`).join('')}
    </select>
  </div>`;

  if (!tasks || tasks.length === 0) {
    html += '<div class="empty"><h3>No tasks</h3><p>Create tasks with <code>tm task add</code> or <code>tm agent analyze</code></p></div>';
  } else {
    html += '<div class="task-list">' + tasks.map(renderTask).join('') + '</div>';
  }
  content.innerHTML = html;
}

function renderTask(task) {
  let details = '';
  if (task.description) details += `<div>${esc(task.description)}</div>`;
  if (task.estimated_hours) {
    const actual = task.actual_hours ? ` &middot; actual ${task.actual_hours}h` : '';
    details += `<div>Estimated ${task.estimated_hours}h${actual}</div>`;
  }
  if (task.ai_context.commands.length > 0) {
    details += `<div>Commands: ${task.ai_context.commands.map(c => `<code>${esc(c)}</code>`).join(' ')}</div>`;
  }
  if (task.depends_on.length > 0) {
    details += `<div>Depends on: ${task.depends_on.map(d => `<code>${esc(d)}</code>`).join(', ')}</div>`;
  }
  if (task.tags.length > 0) details += `<div class="tags">#${task.tags.map(esc).join(' #')}</div>`;

  return `<div class="task-card" style="border-left-color:var(--${task.priority})">
    <div class="task-header">
      <span class="badge" style="color:var(--${task.status})">${esc(task.status.replace('_', ' '))}</span>
      <span class="badge">${esc(task.type)}</span>
      <span class="task-title">${esc(task.title)}</span>
      <span class="task-id">${esc(task.id)}</span>
    </div>
    ${details ? `<div class="task-details">${details}</div>` : ''}
  </div>`;
}

function esc(s) {
  if (s === null || s === undefined) return '';
  const d = document.createElement('div');
  d.textContent = String(s);
  return d.innerHTML;
}

loadProjects();
setInterval(() => { if (currentProject) loadDashboard(currentProject); }, 30000);
</script>
</body>
</html>"""
