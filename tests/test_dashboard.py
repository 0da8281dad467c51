from datetime import datetime

from ai_recruiter.dashboard import build_candidates, compute_analytics, filter_interviews

NOW = datetime(2025, 6, 15, 12, 0)

INTERVIEWS = [
    {"interviewId": "a", "jobPosition": "Backend Engineer", "jobDescription": "Python APIs",
     "duration": "30 Min", "type": ["Technical"], "createdAt": datetime(2025, 6, 10)},
    {"interviewId": "b", "jobPosition": "Product Manager", "jobDescription": "Roadmaps",
     "duration": 45, "type": ["Behavioral", "Leadership"], "createdAt": datetime(2025, 6, 1)},
    {"interviewId": "c", "jobPosition": "Backend Engineer", "jobDescription": "Go services",
     "duration": "15", "type": ["Technical", "System Design"], "createdAt": datetime(2025, 2, 20)},
]

FEEDBACK = [
    {"feedbackId": "f1", "interviewId": "a", "candidateName": "Ada", "candidateEmail": "ada@x.com",
     "jobPosition": "Backend Engineer", "overallRating": 8, "summary": "Great", "recommendation": "Hire",
     "durationSeconds": 1500, "createdAt": datetime(2025, 6, 11)},
    {"feedbackId": "f2", "interviewId": "a", "candidateName": "Ada", "candidateEmail": "ada@x.com",
     "overallRating": 6, "createdAt": datetime(2025, 6, 12)},
    {"feedbackId": "f3", "interviewId": "b", "candidateName": "Bob", "candidateEmail": None,
     "overallRating": 5, "recommendation": "Do Not Hire", "createdAt": datetime(2025, 6, 3)},
]


def test_filter_interviews_search_and_type():
    rows = filter_interviews(INTERVIEWS, search="python")
    assert [r["interviewId"] for r in rows] == ["a"]

    rows = filter_interviews(INTERVIEWS, interview_type="Technical")
    assert [r["interviewId"] for r in rows] == ["a", "c"]


def test_filter_interviews_sorting():
    assert [r["interviewId"] for r in filter_interviews(INTERVIEWS, sort="oldest")] == ["c", "b", "a"]
    assert [r["interviewId"] for r in filter_interviews(INTERVIEWS, sort="duration")] == ["b", "a", "c"]
    assert [r["jobPosition"] for r in filter_interviews(INTERVIEWS, sort="position")][-1] == "Product Manager"


def test_build_candidates_dedupes_keeping_newest():
    rows = build_candidates(FEEDBACK, INTERVIEWS)

    assert [r["id"] for r in rows] == ["f2", "f3"]
    ada = rows[0]
    assert ada["rating"] == 6
    assert ada["position"] == "Backend Engineer"
    assert ada["feedback"] == "No feedback available"
    assert ada["recommendation"] == "Not Available"
    bob = rows[1]
    assert bob["email"] == "No email provided"
    assert bob["position"] == "Product Manager"


def test_build_candidates_search_and_sort():
    assert [r["name"] for r in build_candidates(FEEDBACK, INTERVIEWS, search="bob")] == ["Bob"]
    assert [r["name"] for r in build_candidates(FEEDBACK, INTERVIEWS, sort="name")] == ["Ada", "Bob"]
    assert [r["rating"] for r in build_candidates(FEEDBACK, INTERVIEWS, sort="rating")] == [6, 5]


def test_compute_analytics_window():
    sessions = [
        {"interviewId": "a", "outcome": "feedback"},
        {"interviewId": "a", "outcome": "feedback"},
        {"interviewId": "b", "outcome": "feedback"},
        {"interviewId": "b", "outcome": "error"},
        {"interviewId": "c", "outcome": "error"},
    ]
    stats = compute_analytics(INTERVIEWS, FEEDBACK, sessions, days=30, now=NOW)

    assert stats["totalInterviews"] == 2
    assert stats["totalCandidates"] == 2
    assert stats["avgRating"] == round((8 + 6 + 5) / 3, 1)
    assert stats["completionRate"] == 75
    assert stats["topPositions"][0] == {"position": "Backend Engineer", "count": 1}
    assert {t["type"]: t["percentage"] for t in stats["interviewTypes"]} == {
        "Technical": 50, "Behavioral": 50, "Leadership": 50,
    }


def test_compute_analytics_monthly_series():
    stats = compute_analytics(INTERVIEWS, [], [], days=365, now=NOW)
    months = stats["monthlyData"]
    assert [m["month"] for m in months] == ["Jan", "Feb", "Mar", "Apr", "May", "Jun"]
    assert [m["count"] for m in months] == [0, 1, 0, 0, 0, 2]
    assert stats["avgRating"] == 0
    assert stats["completionRate"] == 0


def test_compute_analytics_monthly_wraps_year():
    stats = compute_analytics([], [], [], days=30, now=datetime(2025, 2, 3))
    assert [m["month"] for m in stats["monthlyData"]] == ["Sep", "Oct", "Nov", "Dec", "Jan", "Feb"]
