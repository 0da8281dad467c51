import os
import pathlib
import requests
import streamlit as st
from dotenv import load_dotenv
from requests.exceptions import Timeout, RequestException, HTTPError

# Load frontend/.env
FRONTEND_DIR = pathlib.Path(__file__).resolve().parents[0]
load_dotenv(dotenv_path=os.path.join(FRONTEND_DIR, ".env"))

BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")
APP_NAME = os.getenv("APP_NAME", "AI Recruiter Interview")

st.set_page_config(page_title=APP_NAME, page_icon="🎙️", layout="centered")
st.title(APP_NAME)


def api(method: str, path: str, **kwargs):
    resp = requests.request(method, f"{BACKEND_URL}{path}", timeout=120, **kwargs)
    resp.raise_for_status()
    return resp.json()


def show_error(action: str, e: Exception):
    if isinstance(e, Timeout):
        st.error(f"⚠️ Server took too long to respond while {action}. Please try again.")
    elif isinstance(e, HTTPError):
        st.error(f"⚠️ HTTP error while {action}: {e.response.text}")
    elif isinstance(e, RequestException):
        st.error(f"⚠️ Network error while {action}: {e}")
    else:
        st.error(f"⚠️ Unexpected error: {e}")


# Init session state
if "session" not in st.session_state:
    st.session_state["session"] = None
    st.session_state["interview"] = None

# The shared link ends with the interview id
link = st.query_params.get("interview", "")
link = st.text_input("Interview link or ID", value=link)
interview_id = link.rstrip("/").split("/")[-1] if link else ""

if interview_id and st.session_state["interview"] is None:
    try:
        st.session_state["interview"] = api("GET", f"/interviews/{interview_id}")
    except Exception as e:
        show_error("loading the interview", e)

interview = st.session_state["interview"]
session = st.session_state["session"]

# Join
if interview and session is None:
    st.subheader(interview.get("jobPosition") or "Interview")
    st.write(f"⏱️ {interview.get('duration')} min")
    st.info(
        "Before you begin:\n"
        "- Ensure you have a stable internet connection\n"
        "- Test your microphone\n"
        "- No disturbances from your surroundings"
    )
    with st.form("join_form"):
        name = st.text_input("Your full name", placeholder="e.g. John Smith")
        email = st.text_input("Your email", placeholder="e.g. john.smith@gmail.com")
        joined = st.form_submit_button("Join Interview")
        if joined:
            if not name.strip():
                st.warning("Please enter your name")
            else:
                try:
                    st.session_state["session"] = api(
                        "POST",
                        f"/interviews/{interview['interviewId']}/sessions",
                        json={"candidateName": name.strip(), "candidateEmail": email.strip() or None},
                    )
                    st.rerun()
                except Exception as e:
                    show_error("starting the interview", e)

# Live session
if session and session["state"] != "done":
    st.subheader("AI Interview Session")
    minutes, seconds = divmod(session.get("elapsedSeconds") or 0, 60)
    st.write(f"**Candidate:** {session.get('candidateName')}  |  ⏱️ {minutes:02d}:{seconds:02d}")
    st.write(f"**Status:** {session['state']}")
    speaking = session.get("speaking")
    if speaking:
        st.write("🗣️ AI Recruiter is speaking" if speaking == "agent" else "🎤 Your turn")
    if session.get("webCallUrl"):
        st.link_button("📞 Open voice call", session["webCallUrl"])

    col1, col2, col3 = st.columns(3)
    with col1:
        if st.button("🔄 Refresh"):
            try:
                st.session_state["session"] = api("GET", f"/sessions/{session['sessionId']}")
                st.rerun()
            except Exception as e:
                show_error("refreshing the session", e)
    with col2:
        label = "🔈 Unmute" if session.get("muted") else "🔇 Mute"
        if st.button(label):
            try:
                api("POST", f"/sessions/{session['sessionId']}/mute", json={"muted": not session.get("muted")})
                st.session_state["session"] = api("GET", f"/sessions/{session['sessionId']}")
                st.rerun()
            except Exception as e:
                show_error("muting", e)
    with col3:
        confirm = st.checkbox("I want to end the interview")
        if st.button("☎️ End Interview", disabled=not confirm):
            try:
                st.session_state["session"] = api("POST", f"/sessions/{session['sessionId']}/end")
                st.rerun()
            except Exception as e:
                show_error("ending the interview", e)

# Finished
if session and session["state"] == "done":
    outcome = session.get("outcome")
    if outcome == "error":
        st.error("Something went wrong with the interview call. Please contact the recruiter.")
    else:
        st.markdown("## Interview Complete ✅")
        st.write("🎉 Thank you for completing the interview! Your responses have been recorded.")

    if st.button("↩️ Back"):
        for key in list(st.session_state.keys()):
            del st.session_state[key]
        st.rerun()
