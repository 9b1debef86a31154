# frontend/app.py
# Project Dashboard - Streamlit UI
#
# Run from repo root: streamlit run frontend/app.py
# Or from frontend folder: streamlit run app.py

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import streamlit as st

from domains.projects.models.actor import Session
from domains.projects.models.project import Project, ProjectPriority, ProjectStatus

# Import environment config (robust fallback for different run contexts)
try:
    from frontend import config
    from frontend.auth import clear_session, get_current_actor, get_session, init_auth_state, is_authenticated, set_session
    from frontend.services import Adapters, build_adapters
    from frontend.summary import (
        ALL,
        average_progress,
        filter_projects,
        recent_activity,
        sort_projects,
        status_breakdown,
        status_chart_data,
        to_dataframe,
    )
    from frontend.validation import validate_signup
except ModuleNotFoundError:
    import config
    from auth import clear_session, get_current_actor, get_session, init_auth_state, is_authenticated, set_session
    from services import Adapters, build_adapters
    from summary import (
        ALL,
        average_progress,
        filter_projects,
        recent_activity,
        sort_projects,
        status_breakdown,
        status_chart_data,
        to_dataframe,
    )
    from validation import validate_signup

logger = logging.getLogger(__name__)

STATUSES = [s.value for s in ProjectStatus]
PRIORITIES = [p.value for p in ProjectPriority]

SORT_LABELS = {
    "Name": "name",
    "Status": "status",
    "Priority": "priority",
    "Assignee": "assigneeName",
    "Due date": "dueDate",
    "Progress": "progress",
}


# --------------------------------------------------------------------
# Adapters (chosen once per process)
# --------------------------------------------------------------------

@st.cache_resource
def get_adapters() -> Adapters:
    logging.basicConfig(level=logging.DEBUG if config.IS_DEV else logging.INFO)
    config.log_config()
    return build_adapters()


def init_state() -> None:
    ss = st.session_state
    init_auth_state(get_adapters().sessions)
    ss.setdefault("nav_page", None)
    ss.setdefault("_toast", None)
    ss.setdefault("editing_project_id", None)
    ss.setdefault("viewing_project_id", None)
    ss.setdefault("confirm_delete_id", None)


def go_to(page: str) -> None:
    st.session_state["nav_page"] = page
    st.rerun()


def queue_toast(message: str) -> None:
    """Show a toast after the next rerun (a toast raised right before st.rerun() is lost)."""
    st.session_state["_toast"] = message


def flush_toast() -> None:
    message = st.session_state.pop("_toast", None)
    if message:
        st.toast(message, icon="✅")


# --------------------------------------------------------------------
# Data helpers
# --------------------------------------------------------------------

def load_projects() -> List[Project]:
    result = get_adapters().records.list(get_session())
    if not result.success:
        st.error(f"Could not load projects: {result.error}")
        return []
    return result.data or []


def format_date(value: Optional[str]) -> str:
    if not value:
        return "n/a"
    try:
        return date.fromisoformat(value[:10]).strftime("%b %d, %Y")
    except ValueError:
        return value


# --------------------------------------------------------------------
# Sidebar
# --------------------------------------------------------------------

def render_sidebar() -> None:
    adapters = get_adapters()
    ss = st.session_state
    with st.sidebar:
        st.markdown("## 📊 Project Dashboard")

        if adapters.demo_mode:
            st.info("Demo mode: data is stored locally on this machine.")

        if not is_authenticated():
            return

        actor = get_current_actor()
        st.caption(f"Signed in as **{actor.display_name}**")
        st.caption(actor.email)

        pages = ["Dashboard", "Projects", "Profile"]
        current = ss.get("nav_page") if ss.get("nav_page") in pages else "Dashboard"
        choice = st.radio("Navigate", pages, index=pages.index(current))
        if choice != current:
            go_to(choice)

        st.markdown("---")
        if st.button("Sign out", use_container_width=True):
            adapters.sessions.sign_out(get_session())
            clear_session()
            go_to("Login")


# --------------------------------------------------------------------
# Login / Sign up
# --------------------------------------------------------------------

def render_demo_notice() -> None:
    sessions = get_adapters().sessions
    if not hasattr(sessions, "list_actors"):
        return
    with st.expander("Demo accounts", expanded=True):
        st.markdown("Sign in with **demo@example.com** / **demo123**, or create your own account.")
        actors = sessions.list_actors()
        if actors:
            st.caption("Accounts on this machine: " + ", ".join(a.email for a in actors))


def render_login() -> None:
    adapters = get_adapters()

    st.header("Welcome")
    if adapters.demo_mode:
        render_demo_notice()

    tab_in, tab_up = st.tabs(["Sign in", "Create account"])

    with tab_in:
        with st.form("login_form"):
            email = st.text_input("Email", key="login_email")
            password = st.text_input("Password", type="password", key="login_password")
            submitted = st.form_submit_button("Sign in")

        if submitted:
            if not email or not password:
                st.error("Please enter email and password.")
            else:
                with st.spinner("Signing in..."):
                    result = adapters.sessions.sign_in(email.strip(), password)
                if result.ok and result.session:
                    set_session(result.session)
                    queue_toast("Signed in successfully!")
                    go_to("Dashboard")
                else:
                    st.error(result.error or "Failed to sign in")

    with tab_up:
        with st.form("signup_form"):
            name = st.text_input("Full name", key="signup_name")
            reg_email = st.text_input("Email", key="signup_email")
            reg_password = st.text_input("Password", type="password", key="signup_password")
            st.caption("At least 6 characters, including a lowercase letter and a number.")
            reg_submitted = st.form_submit_button("Create account")

        if reg_submitted:
            # Same rules the adapters enforce, reported before any call
            error = validate_signup(reg_email.strip(), reg_password, name)
            if error:
                st.error(error)
            else:
                with st.spinner("Creating account..."):
                    result = adapters.sessions.sign_up(reg_email.strip(), reg_password, name)
                if result.ok:
                    if adapters.demo_mode:
                        st.success("Demo account created successfully! You can now sign in.")
                    else:
                        st.success("Account created! You can now sign in.")
                else:
                    st.error(result.error or "Failed to create account")


# --------------------------------------------------------------------
# Dashboard
# --------------------------------------------------------------------

def render_dashboard() -> None:
    projects = load_projects()
    breakdown = status_breakdown(projects)

    st.header("Dashboard")

    c1, c2, c3, c4 = st.columns(4)
    c1.metric("Total projects", len(projects))
    c2.metric("Completed", breakdown["Completed"]["count"])
    c3.metric("In progress", breakdown["In Progress"]["count"])
    c4.metric("Average progress", f"{average_progress(projects)}%")

    col_status, col_recent = st.columns(2)

    with col_status:
        st.subheader("Project status")
        for status in STATUSES:
            entry = breakdown[status]
            st.write(f"{status}: {entry['count']} ({entry['percent']}%)")
            st.progress(entry["percent"] / 100)
        if projects:
            st.bar_chart(status_chart_data(projects))

    with col_recent:
        st.subheader("Recent activity")
        recent = recent_activity(projects)
        if not recent:
            st.caption("No recent activity. Create your first project to get started.")
        for p in recent:
            st.markdown(f"**{p.name}** - {p.status.lower()}")
            st.caption(f"Updated {format_date(p.updated_at)}")

    st.markdown("---")
    if st.button("➕ New project", type="primary"):
        go_to("Projects")


# --------------------------------------------------------------------
# Projects
# --------------------------------------------------------------------

def render_new_project_form() -> None:
    adapters = get_adapters()
    with st.expander("➕ New project", expanded=False):
        with st.form("new_project_form", clear_on_submit=True):
            name = st.text_input("Project name")
            description = st.text_area("Description")
            c1, c2, c3 = st.columns(3)
            status = c1.selectbox("Status", STATUSES, index=0)
            priority = c2.selectbox("Priority", PRIORITIES, index=1)
            due = c3.date_input("Due date", value=date.today())
            submitted = st.form_submit_button("Create project")

        if submitted:
            if not name.strip():
                st.error("Project name is required")
                return
            fields: Dict[str, Any] = {
                "name": name.strip(),
                "description": description.strip() or None,
                "status": status,
                "priority": priority,
                "dueDate": due.isoformat(),
            }
            with st.spinner("Creating project..."):
                result = adapters.records.create(get_session(), fields)
            if result.success:
                queue_toast("Project created successfully!")
                st.rerun()
            else:
                st.error(result.error or "Failed to create project")


def render_edit_project(project: Project) -> None:
    adapters = get_adapters()
    ss = st.session_state
    st.subheader(f"Edit: {project.name}")
    with st.form(f"edit_form_{project.id}"):
        name = st.text_input("Project name", value=project.name)
        description = st.text_area("Description", value=project.description or "")
        c1, c2 = st.columns(2)
        status = c1.selectbox("Status", STATUSES, index=STATUSES.index(project.status))
        priority = c2.selectbox("Priority", PRIORITIES, index=PRIORITIES.index(project.priority))
        c3, c4 = st.columns(2)
        due = c3.date_input("Due date", value=date.fromisoformat(project.due_date))
        progress = c4.slider("Progress", 0, 100, value=project.progress)
        col_save, col_cancel = st.columns(2)
        saved = col_save.form_submit_button("Save changes", type="primary")
        cancelled = col_cancel.form_submit_button("Cancel")

    if cancelled:
        ss["editing_project_id"] = None
        st.rerun()

    if saved:
        if not name.strip():
            st.error("Project name is required")
            return
        partial = {
            "name": name.strip(),
            "description": description.strip() or None,
            "status": status,
            "priority": priority,
            "dueDate": due.isoformat(),
            "progress": progress,
        }
        with st.spinner("Saving..."):
            result = adapters.records.update(get_session(), project.id, partial)
        if result.success:
            ss["editing_project_id"] = None
            queue_toast("Project updated successfully!")
            st.rerun()
        else:
            st.error(result.error or "Failed to update project")


def render_view_project(project: Project) -> None:
    ss = st.session_state
    st.subheader(project.name)
    if project.description:
        st.write(project.description)
    c1, c2, c3 = st.columns(3)
    c1.metric("Status", project.status)
    c2.metric("Priority", project.priority)
    c3.metric("Due", format_date(project.due_date))
    st.progress(project.progress / 100, text=f"{project.progress}% complete")
    st.caption(
        f"Assigned to {project.assignee.name} ({project.assignee.initials}) · "
        f"created {format_date(project.created_at)} · updated {format_date(project.updated_at)}"
    )
    if st.button("Close", key=f"close_view_{project.id}"):
        ss["viewing_project_id"] = None
        st.rerun()


def render_delete_confirmation(project: Project) -> None:
    adapters = get_adapters()
    ss = st.session_state
    st.warning(f"Delete **{project.name}**? This cannot be undone.")
    col_yes, col_no = st.columns(2)
    if col_yes.button("Delete", type="primary", key=f"confirm_delete_{project.id}"):
        with st.spinner("Deleting..."):
            result = adapters.records.delete(get_session(), project.id)
        ss["confirm_delete_id"] = None
        if result.success:
            queue_toast("Project deleted successfully!")
            st.rerun()
        else:
            st.error(result.error or "Failed to delete project")
    if col_no.button("Cancel", key=f"cancel_delete_{project.id}"):
        ss["confirm_delete_id"] = None
        st.rerun()


def render_projects() -> None:
    ss = st.session_state
    projects = load_projects()

    st.header("Projects")
    render_new_project_form()

    c1, c2, c3, c4, c5 = st.columns([3, 2, 2, 2, 1])
    search = c1.text_input("Search", placeholder="Project or assignee name", key="project_search")
    status = c2.selectbox("Status", [ALL] + STATUSES, key="status_filter")
    priority = c3.selectbox("Priority", [ALL] + PRIORITIES, key="priority_filter")
    sort_label = c4.selectbox("Sort by", list(SORT_LABELS.keys()), key="sort_field")
    descending = c5.toggle("Desc", key="sort_desc")

    visible = sort_projects(
        filter_projects(projects, search=search, status=status, priority=priority),
        field=SORT_LABELS[sort_label],
        order="desc" if descending else "asc",
    )

    st.caption(f"Showing {len(visible)} of {len(projects)} total")

    if not projects:
        st.info("No projects yet. Create your first project to get started.")
        return
    if not visible:
        st.info("No projects match your filters")
        return

    st.dataframe(
        to_dataframe(visible).drop(columns=["id"]),
        use_container_width=True,
        hide_index=True,
        column_config={"Progress": st.column_config.ProgressColumn("Progress", min_value=0, max_value=100)},
    )

    by_id = {p.id: p for p in visible}
    selected_id = st.selectbox(
        "Select a project",
        list(by_id.keys()),
        format_func=lambda pid: by_id[pid].name,
        key="selected_project",
    )
    col_view, col_edit, col_delete = st.columns(3)
    if col_view.button("👁 View", use_container_width=True):
        ss["viewing_project_id"] = selected_id
        ss["editing_project_id"] = None
    if col_edit.button("✏️ Edit", use_container_width=True):
        ss["editing_project_id"] = selected_id
        ss["viewing_project_id"] = None
    if col_delete.button("🗑 Delete", use_container_width=True):
        ss["confirm_delete_id"] = selected_id

    all_by_id = {p.id: p for p in projects}
    if ss.get("confirm_delete_id") in all_by_id:
        render_delete_confirmation(all_by_id[ss["confirm_delete_id"]])
    if ss.get("editing_project_id") in all_by_id:
        render_edit_project(all_by_id[ss["editing_project_id"]])
    elif ss.get("viewing_project_id") in all_by_id:
        render_view_project(all_by_id[ss["viewing_project_id"]])


# --------------------------------------------------------------------
# Profile
# --------------------------------------------------------------------

def render_profile() -> None:
    adapters = get_adapters()
    session: Session = get_session()
    actor = session.actor

    st.header("Profile")
    with st.form("profile_form"):
        name = st.text_input("Name", value=actor.name)
        email = st.text_input("Email", value=actor.email, disabled=not adapters.demo_mode)
        submitted = st.form_submit_button("Save profile")

    if submitted:
        fields: Dict[str, Any] = {}
        if name.strip() and name.strip() != actor.name:
            fields["name"] = name.strip()
        if adapters.demo_mode and email.strip() and email.strip() != actor.email:
            fields["email"] = email.strip()
        if not fields:
            st.info("Nothing to update.")
        else:
            with st.spinner("Saving..."):
                result = adapters.sessions.update_profile(session, fields)
            if result.ok and result.session:
                set_session(result.session)
                queue_toast("Profile updated successfully!")
                st.rerun()
            else:
                st.error(result.error or "Failed to update profile")

    st.subheader("Preferences")
    prefs = adapters.records.get_preferences(session)
    current = (prefs.data or {}).get("theme", "system") if prefs.success else "system"
    themes = ["system", "light", "dark"]
    theme = st.radio("Theme", themes, index=themes.index(current) if current in themes else 0, horizontal=True)
    if theme != current:
        result = adapters.records.save_preferences(session, {**(prefs.data or {}), "theme": theme})
        if result.success:
            st.toast("Preferences saved", icon="✅")
        else:
            st.error(result.error or "Failed to save preferences")

    if actor.created_at:
        st.caption(f"Member since {format_date(actor.created_at)}")
    if actor.last_login:
        st.caption(f"Last sign-in {format_date(actor.last_login)}")


# --------------------------------------------------------------------
# Main
# --------------------------------------------------------------------

def main() -> None:
    st.set_page_config(page_title="Project Dashboard", page_icon="📊", layout="wide")
    init_state()
    ss = st.session_state

    # Logged-out users always land on Login
    if not is_authenticated():
        ss["nav_page"] = "Login"
    elif not ss.get("nav_page") or ss["nav_page"] == "Login":
        ss["nav_page"] = "Dashboard"

    logger.debug("[ROUTING] page=%s | session_present=%s", ss["nav_page"], is_authenticated())

    flush_toast()
    render_sidebar()

    nav_page = ss["nav_page"]
    if nav_page == "Login":
        render_login()
    elif nav_page == "Dashboard":
        render_dashboard()
    elif nav_page == "Projects":
        render_projects()
    elif nav_page == "Profile":
        render_profile()
    else:
        ss["nav_page"] = "Login"
        render_login()


if __name__ == "__main__":
    main()
