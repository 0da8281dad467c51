# admin_app.py
import os
import pathlib
import requests
import pandas as pd
import streamlit as st
from dotenv import load_dotenv
import matplotlib.pyplot as plt

# Load .env
FRONTEND_DIR = pathlib.Path(__file__).resolve().parents[0]
load_dotenv(dotenv_path=os.path.join(FRONTEND_DIR, ".env"))

BACKEND_URL = os.getenv("BACKEND_URL", "http://localhost:8000")
APP_NAME = os.getenv("APP_NAME", "AI Recruiter")

st.set_page_config(page_title=f"Recruiter Dashboard - {APP_NAME}", page_icon="📊", layout="wide")
st.title(f"📊 Recruiter Dashboard - {APP_NAME}")

# ========== AUTH ==========
if "user" not in st.session_state:
    st.session_state["user"] = None

if not st.session_state["user"]:
    st.subheader("🔐 Sign in")
    email = st.text_input("Email")
    name = st.text_input("Name")
    if st.button("Sign in"):
        headers = {"X-User-Email": email, "X-User-Name": name}
        try:
            resp = requests.post(f"{BACKEND_URL}/auth/session", headers=headers, timeout=30)
            resp.raise_for_status()
            st.session_state["user"] = resp.json()["user"]
            st.success("✅ Signed in")
            st.rerun()
        except Exception as e:
            st.error(f"❌ Sign in failed: {e}")
    st.stop()

user = st.session_state["user"]
HEADERS = {"X-User-Email": user["email"], "X-User-Name": user.get("name") or ""}


def api(method: str, path: str, raw: bool = False, **kwargs):
    resp = requests.request(method, f"{BACKEND_URL}{path}", headers=HEADERS, timeout=120, **kwargs)
    resp.raise_for_status()
    return resp.content if raw else resp.json()


with st.sidebar:
    st.write(f"👤 {user.get('name') or user['email']}")
    if st.button("Sign out"):
        requests.delete(f"{BACKEND_URL}/auth/session", headers=HEADERS, timeout=30)
        st.session_state.clear()
        st.rerun()

tab_create, tab_interviews, tab_candidates, tab_analytics, tab_settings = st.tabs(
    ["➕ Create Interview", "🗂️ Interviews", "👥 Candidates", "📈 Analytics", "⚙️ Settings"]
)

# ========== CREATE INTERVIEW ==========
with tab_create:
    types = api("GET", "/interview-types")["types"]
    with st.form("create_form"):
        job_position = st.text_input("Job Position", placeholder="e.g. Full Stack Developer")
        job_description = st.text_area("Job Description", height=150)
        duration = st.selectbox("Interview Duration", [5, 15, 30, 45, 60], format_func=lambda d: f"{d} Min")
        selected_types = st.multiselect("Interview Type", types)
        generate = st.form_submit_button("Generate Questions")

    if generate:
        payload = {
            "jobPosition": job_position,
            "jobDescription": job_description,
            "duration": duration,
            "type": selected_types,
        }
        with st.spinner("Generating interview questions..."):
            try:
                result = api("POST", "/interviews/questions", json=payload)
                st.session_state["draft"] = {**payload, "questionList": result["questions"]}
                if result.get("error"):
                    st.warning(f"⚠️ Question generation reported: {result['error']}")
            except Exception as e:
                st.error(f"Failed to generate questions: {e}")

    draft = st.session_state.get("draft")
    if draft:
        st.markdown("### 📝 Generated Questions")
        for idx, q in enumerate(draft["questionList"], 1):
            st.write(f"**Q{idx}** ({q.get('type')}): {q.get('question')}")

        if draft["questionList"] and st.button("Create Interview Link"):
            try:
                created = api("POST", "/interviews", json=draft)
                st.success("✅ Your AI Interview is Ready!")
                st.code(created["link"])
                st.session_state.pop("draft", None)
            except Exception as e:
                st.error(f"Failed to save interview: {e}")

# ========== INTERVIEWS ==========
with tab_interviews:
    col1, col2, col3 = st.columns(3)
    with col1:
        search = st.text_input("Search interviews")
    with col2:
        type_filter = st.selectbox("Type", ["all"] + types)
    with col3:
        sort = st.selectbox("Sort", ["newest", "oldest", "position", "duration"])

    try:
        interviews = api("GET", "/interviews", params={"search": search, "type": type_filter, "sort": sort})
    except Exception as e:
        st.error(f"Failed to fetch interviews: {e}")
        interviews = []

    if not interviews:
        st.info("You don't have any interviews created!")
    else:
        df = pd.DataFrame(interviews)
        df["questions"] = df["questionList"].apply(len)
        df["type"] = df["type"].apply(lambda t: ", ".join(t or []))
        st.dataframe(
            df[["jobPosition", "duration", "type", "questions", "createdAt", "link"]],
            use_container_width=True,
        )

        to_delete = st.selectbox(
            "Delete interview",
            [None] + [i["interviewId"] for i in interviews],
            format_func=lambda i: "Select..." if i is None else next(
                x["jobPosition"] for x in interviews if x["interviewId"] == i
            ),
        )
        if to_delete and st.button("🗑️ Delete"):
            try:
                api("DELETE", f"/interviews/{to_delete}")
                st.success("Interview deleted")
                st.rerun()
            except Exception as e:
                st.error(f"Failed to delete interview: {e}")

    st.markdown("#### ⬇️ Export")
    col1, col2 = st.columns(2)
    with col1:
        export_format = st.selectbox("Format", ["json", "csv"])
    with col2:
        date_range = st.selectbox("Date range", ["all", "7days", "30days", "90days"])
    if st.button("Prepare export"):
        try:
            content = api("GET", "/export", raw=True, params={"format": export_format, "date_range": date_range})
            st.download_button(
                "⬇️ Download export",
                data=content,
                file_name=f"interviews-export.{export_format}",
                mime="text/csv" if export_format == "csv" else "application/json",
            )
        except Exception as e:
            st.error(f"Export failed: {e}")

# ========== CANDIDATES ==========
with tab_candidates:
    col1, col2 = st.columns(2)
    with col1:
        candidate_search = st.text_input("Search candidates")
    with col2:
        candidate_sort = st.selectbox("Sort by", ["newest", "oldest", "rating", "name"])

    try:
        candidates = api("GET", "/candidates", params={"search": candidate_search, "sort": candidate_sort})
    except Exception as e:
        st.error(f"Failed to fetch candidates: {e}")
        candidates = []

    if not candidates:
        st.info("No candidates have completed an interview yet.")
    else:
        cdf = pd.DataFrame(candidates)

        def highlight_rating(val):
            if isinstance(val, (int, float)):
                if val >= 8:
                    return "background-color: #d4edda; color: #155724; font-weight: bold;"
                elif val >= 6:
                    return "background-color: #fff3cd; color: #856404; font-weight: bold;"
                else:
                    return "background-color: #f8d7da; color: #721c24; font-weight: bold;"
            return ""

        ranked = cdf[["name", "email", "position", "rating", "recommendation", "interviewDate"]]
        st.dataframe(ranked.style.map(highlight_rating, subset=["rating"]), use_container_width=True, height=420)

        # ===== drill-down =====
        st.subheader("🔍 Candidate Feedback")
        pick = st.selectbox("Select Candidate", cdf["id"], format_func=lambda i: cdf.loc[cdf["id"] == i, "name"].iloc[0])
        row = next(c for c in candidates if c["id"] == pick)
        try:
            feedback = api("GET", f"/feedback/{row['interviewId']}/{row['id']}")
        except Exception as e:
            st.error(f"Failed to load feedback: {e}")
            feedback = None

        if feedback:
            st.write(
                f"### {feedback.get('candidateName')}: {feedback.get('overallRating')}/10 | "
                f"{feedback.get('recommendation')}"
            )
            ratings = feedback.get("rating") or {}
            if ratings:
                fig, ax = plt.subplots(figsize=(4, 2))
                ax.barh(list(ratings.keys()), list(ratings.values()), color="#4e79a7", edgecolor="black")
                ax.set_xlim(0, 10)
                ax.tick_params(axis="both", labelsize=8)
                plt.tight_layout()
                st.pyplot(fig, use_container_width=False)
            st.markdown("**Summary**")
            st.write(feedback.get("summary") or "No summary available.")
            st.markdown("**Recommendation**")
            st.write(feedback.get("recommendationMsg") or "No recommendation message available.")

            try:
                pdf = api("GET", f"/feedback/{feedback['feedbackId']}/pdf", raw=True)
                st.download_button(
                    label=f"📄 Download {feedback.get('candidateName')}'s Report",
                    data=pdf,
                    file_name=f"{feedback.get('candidateName')}_feedback.pdf",
                    mime="application/pdf",
                )
            except Exception as e:
                st.warning(f"⚠️ PDF not available: {e}")

# ========== ANALYTICS ==========
with tab_analytics:
    days = st.selectbox("Period", [7, 30, 90, 365], index=1, format_func=lambda d: f"Last {d} days")
    try:
        stats = api("GET", "/analytics", params={"days": days})
    except Exception as e:
        st.error(f"Failed to fetch analytics: {e}")
        stats = None

    if stats is not None:
        c1, c2, c3, c4 = st.columns(4)
        c1.metric("Interviews", stats["totalInterviews"])
        c2.metric("Candidates", stats["totalCandidates"])
        c3.metric("Avg Rating", stats["avgRating"])
        c4.metric("Completion", f"{stats['completionRate']}%")

        col1, col2 = st.columns(2)
        with col1:
            st.markdown("### 📅 Interviews per Month")
            monthly = pd.DataFrame(stats["monthlyData"])
            fig, ax = plt.subplots(figsize=(4.5, 3))
            ax.bar(monthly["month"], monthly["count"], color="#59a14f", edgecolor="black")
            ax.set_ylabel("Count", fontsize=8)
            plt.tight_layout()
            st.pyplot(fig, use_container_width=True)
        with col2:
            st.markdown("### 🎯 Interview Types")
            if stats["interviewTypes"]:
                tdf = pd.DataFrame(stats["interviewTypes"])
                fig, ax = plt.subplots(figsize=(4.5, 4.5))
                ax.pie(tdf["count"], labels=tdf["type"], autopct='%1.1f%%', startangle=90)
                ax.axis("equal")
                st.pyplot(fig, use_container_width=True)
            else:
                st.info("No interviews in this period.")

        st.markdown("### 🏆 Top Positions")
        st.table(pd.DataFrame(stats["topPositions"]))

# ========== SETTINGS ==========
with tab_settings:
    settings = api("GET", "/settings")
    with st.form("settings_form"):
        email_notifications = st.checkbox("Email notifications", value=settings["emailNotifications"])
        browser_notifications = st.checkbox("Browser notifications", value=settings["browserNotifications"])
        weekly_reports = st.checkbox("Weekly reports", value=settings["weeklyReports"])
        auto_delete = st.checkbox("Auto-delete old interviews", value=settings["autoDeleteOldInterviews"])
        retention = st.number_input("Data retention (days)", min_value=1, value=settings["dataRetentionDays"])
        if st.form_submit_button("Save settings"):
            try:
                api("PUT", "/settings", json={
                    "emailNotifications": email_notifications,
                    "browserNotifications": browser_notifications,
                    "weeklyReports": weekly_reports,
                    "autoDeleteOldInterviews": auto_delete,
                    "dataRetentionDays": int(retention),
                })
                st.success("✅ Settings saved")
            except Exception as e:
                st.error(f"Failed to save settings: {e}")

    st.markdown("#### 🗄️ Your data")
    col1, col2 = st.columns(2)
    with col1:
        if st.button("Prepare data export"):
            try:
                content = api("GET", "/settings/export", raw=True)
                st.download_button(
                    "⬇️ Download my data",
                    data=content,
                    file_name="ai-recruiter-data.json",
                    mime="application/json",
                )
            except Exception as e:
                st.error(f"Failed to export data: {e}")
    with col2:
        confirm = st.text_input('Type "DELETE" to delete all your interviews, settings and account')
        if st.button("🗑️ Delete all data", disabled=confirm != "DELETE"):
            try:
                api("DELETE", "/account")
                st.session_state.clear()
                st.success("All data deleted successfully")
                st.rerun()
            except Exception as e:
                st.error(f"Failed to delete data: {e}")
