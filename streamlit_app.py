"""
Busy Assistant - Streamlit Frontend

A chat interface with a personal memory manager.
Connects to the FastAPI backend for processing.

Run with: streamlit run streamlit_app.py
"""
import os

import requests
import streamlit as st

# ============================================================
# Configuration
# ============================================================

API_BASE_URL = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")

MODES = {
    "graph": "🕸️ Graph agent",
    "agent": "🛠️ Tool agent",
    "chat": "💬 Plain chat",
}

st.set_page_config(
    page_title="Busy Assistant",
    page_icon="🧠",
    layout="wide",
    initial_sidebar_state="expanded"
)

# ============================================================
# Custom CSS
# ============================================================

st.markdown("""
<style>
    /* "Soft Paper" Warm Theme */
    @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600&family=Playfair+Display:wght@600&display=swap');

    html, body, [class*="css"], .stMarkdown, .stText, p {
        font-family: 'Inter', sans-serif;
        color: #334155 !important;
    }
    .stApp {
        background-color: #fdfbf7;
    }
    h1, h2, h3, h4, h5, h6 {
        font-family: 'Playfair Display', serif;
        color: #1e293b !important;
    }
    .main .block-container {
        padding-top: 2rem;
        max-width: 1000px;
    }
    .stChatMessage {
        background-color: #ffffff;
        border-radius: 12px;
        border: 1px solid #f3f4f6;
    }
    [data-testid="stSidebar"] {
        background-color: #f9f8f4;
        border-right: 1px solid #e5e7eb;
    }
    .stTabs [data-baseweb="tab"][aria-selected="true"] {
        color: #d97706 !important;
        border-bottom: 3px solid #d97706;
    }
    .stButton > button {
        border-radius: 8px;
        font-weight: 600;
    }
</style>
""", unsafe_allow_html=True)


# ============================================================
# Session State Initialization
# ============================================================

def init_session_state():
    """Initialize session state variables."""
    if "token" not in st.session_state:
        st.session_state.token = None
    if "user" not in st.session_state:
        st.session_state.user = None
    if "messages" not in st.session_state:
        st.session_state.messages = []
    if "backend_connected" not in st.session_state:
        st.session_state.backend_connected = False


def check_backend() -> bool:
    """Check if backend is available."""
    try:
        response = requests.get(f"{API_BASE_URL}/health", timeout=10)
        st.session_state.backend_connected = response.status_code == 200
    except requests.exceptions.RequestException:
        st.session_state.backend_connected = False
    return st.session_state.backend_connected


# ============================================================
# API Functions
# ============================================================

def _headers() -> dict:
    return {"Authorization": f"Bearer {st.session_state.token}"} if st.session_state.token else {}


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    return body.get("message") or body.get("error") or f"HTTP {response.status_code}"


def api_call(method: str, path: str, timeout: int = 30, **kwargs) -> dict:
    """
    Call the backend and return its JSON, or {"error": ...}.

    A 401 drops the stored token so the login form is shown again.
    """
    try:
        response = requests.request(
            method, f"{API_BASE_URL}{path}", headers=_headers(), timeout=timeout, **kwargs
        )
    except requests.exceptions.Timeout:
        return {"error": "Request timed out. Please try again."}
    except requests.exceptions.ConnectionError:
        return {"error": "Cannot connect to backend server."}

    if response.status_code == 401 and st.session_state.token:
        st.session_state.token = None
        st.session_state.user = None
    if response.status_code == 429:
        return {"error": "Rate limit exceeded. Please wait a moment."}
    if not response.ok:
        return {"error": _error_message(response)}
    return response.json()


def login(email: str, password: str) -> dict:
    result = api_call("POST", "/auth/login", json={"email": email, "password": password})
    if "error" not in result:
        st.session_state.token = result["token"]
        st.session_state.user = result["user"]
        load_history()
    return result


def logout():
    api_call("POST", "/auth/logout")
    st.session_state.token = None
    st.session_state.user = None
    st.session_state.messages = []


def load_history():
    """Load the persisted chat log into the conversation."""
    result = api_call("GET", "/chat/history", params={"limit": 50})
    if "error" not in result:
        st.session_state.messages = [
            {"role": m["role"], "content": m["content"]} for m in result.get("messages", [])
        ]


def send_message(mode: str) -> dict:
    """Send the whole conversation to the chat API."""
    history = [{"role": m["role"], "content": m["content"]} for m in st.session_state.messages]
    return api_call("POST", "/chat", timeout=120, json={"messages": history, "mode": mode})


# ============================================================
# UI Components
# ============================================================

def render_login():
    st.markdown("## 🧠 Busy Assistant")
    st.markdown("Sign in to chat with an assistant that remembers you.")

    with st.form("login"):
        email = st.text_input("Email", value="admin@busy.com")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in", use_container_width=True)

    if submitted:
        result = login(email, password)
        if "error" in result:
            st.error(f"❌ {result['error']}")
        else:
            st.rerun()


def render_sidebar() -> str:
    """Render the sidebar; returns the selected chat mode."""
    with st.sidebar:
        st.title("🧠 Busy Assistant")

        if st.session_state.backend_connected:
            st.success("🟢 System Online")
        else:
            st.error("🔴 System Offline")
            if st.button("🔄 Reconnect", use_container_width=True):
                check_backend()
                st.rerun()

        st.divider()

        user = st.session_state.user or {}
        st.caption(f"Signed in as **{user.get('name', '?')}** ({user.get('email', '?')})")

        mode = st.radio(
            "Mode",
            options=list(MODES),
            format_func=MODES.get,
            help="Graph and tool agents can store and recall memories.",
        )

        col1, col2 = st.columns(2)
        with col1:
            if st.button("🗑️ Clear", help="Clear messages on screen", use_container_width=True):
                st.session_state.messages = []
                st.rerun()
        with col2:
            if st.button("🚪 Logout", use_container_width=True):
                logout()
                st.rerun()

        st.divider()
        st.caption(f"Backend: {API_BASE_URL}")

    return mode


def render_chat(mode: str):
    """Render the chat tab."""
    for msg in st.session_state.messages:
        with st.chat_message(msg["role"]):
            st.markdown(msg["content"])

    if prompt := st.chat_input("Tell me something to remember, or ask what I know..."):
        st.session_state.messages.append({"role": "user", "content": prompt})
        with st.chat_message("user"):
            st.markdown(prompt)

        with st.chat_message("assistant"):
            with st.spinner("Thinking..."):
                result = send_message(mode)

            if "error" in result:
                st.error(f"❌ {result['error']}")
                # keep the history valid: drop the unanswered turn
                st.session_state.messages.pop()
            else:
                st.markdown(result["message"])
                st.session_state.messages.append({"role": "assistant", "content": result["message"]})


def render_memory_card(memory: dict):
    similarity = memory.get("similarity")
    title = memory["content"][:80] + ("..." if len(memory["content"]) > 80 else "")
    if similarity is not None:
        title = f"{title}  ({similarity * 100:.1f}%)"

    with st.expander(title):
        with st.form(f"edit_{memory['id']}"):
            content = st.text_area("Content", value=memory["content"])
            category = st.text_input("Category", value=(memory.get("metadata") or {}).get("category", ""))
            col1, col2 = st.columns(2)
            save = col1.form_submit_button("💾 Save", use_container_width=True)
            delete = col2.form_submit_button("🗑️ Delete", use_container_width=True)

        if save:
            metadata = {"category": category} if category else {}
            result = api_call("PUT", "/memory", json={"id": memory["id"], "content": content, "metadata": metadata})
            if "error" in result:
                st.error(f"❌ {result['error']}")
            else:
                st.toast("✅ Memory updated")
                st.rerun()
        if delete:
            result = api_call("DELETE", "/memory", params={"id": memory["id"]})
            if "error" in result:
                st.error(f"❌ {result['error']}")
            else:
                st.toast("🗑️ Memory deleted")
                st.rerun()

        st.caption(f"Created {memory.get('createdAt', '?')} | Updated {memory.get('updatedAt', '?')}")


def render_memories():
    """Render the memory tab: add, search, browse."""
    with st.expander("➕ Add a memory", expanded=False):
        with st.form("add_memory", clear_on_submit=True):
            content = st.text_area("Content", max_chars=8000)
            category = st.text_input("Category (optional)")
            if st.form_submit_button("Store", use_container_width=True):
                metadata = {"category": category} if category else None
                result = api_call("POST", "/memory", json={"content": content, "metadata": metadata})
                if "error" in result:
                    st.error(f"❌ {result['error']}")
                else:
                    st.toast("✅ Memory stored")

    col1, col2, col3 = st.columns([0.6, 0.2, 0.2])
    with col1:
        query = st.text_input("Search", placeholder="Search by meaning, e.g. 'hobbies'")
    with col2:
        threshold = st.slider("Min similarity", 0.0, 1.0, 0.7, 0.05)
    with col3:
        limit = st.number_input("Limit", min_value=1, max_value=100, value=10)

    params = {"limit": int(limit)}
    if query.strip():
        params.update({"query": query, "threshold": threshold})

    result = api_call("GET", "/memory", params=params)
    if "error" in result:
        st.error(f"❌ {result['error']}")
        return

    memories = result.get("memories", [])
    if not memories:
        st.info("No memories found." if query.strip() else "No memories yet. Tell the assistant about yourself!")
        return

    st.caption(f"{result.get('count', len(memories))} memories")
    for memory in memories:
        render_memory_card(memory)


# ============================================================
# Main App
# ============================================================

def main():
    init_session_state()

    if not st.session_state.backend_connected:
        check_backend()

    if not st.session_state.token:
        render_login()
        return

    mode = render_sidebar()

    chat_tab, memory_tab = st.tabs(["💬 Chat", "🧠 Memories"])
    with chat_tab:
        render_chat(mode)
    with memory_tab:
        render_memories()


if __name__ == "__main__":
    main()
