import json
import os
import unittest
from io import BytesIO
from unittest.mock import patch

os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("ACCESS_MODE", "public")

from fastapi.testclient import TestClient
from pypdf import PdfWriter

from scistu.main import app
from scistu.services.resume_service import build_resume_report, format_score


def blank_pdf() -> bytes:
    writer = PdfWriter()
    writer.add_blank_page(width=612, height=792)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class FakeAI:
    def __init__(self, reply):
        self.reply = reply
        self.messages = None

    async def complete(self, messages, params):
        self.messages = list(messages)
        return self.reply


class ResumeReportApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def test_report_detects_sections_and_skills(self):
        text = (
            "Jane Roe\n"
            "Email jane@example.com\n"
            "Education: BSc Computer Science\n"
            "Experience: Built JavaScript and Python services backed by SQL.\n"
            "Skills: Git, AWS"
        )
        response = self.client.post("/v1/resume/report", json={"resume_text": text})
        self.assertEqual(response.status_code, 200)
        body = response.json()

        self.assertEqual(
            body["sections"],
            {"contact": True, "education": True, "experience": True, "skills": True},
        )
        # "Java" also matches inside "JavaScript".
        self.assertEqual(body["detected_skills"], ["JavaScript", "Python", "Java", "SQL", "Git", "AWS"])
        expected = min(100.0, 70 + 6 * 3 + body["word_count"] / 10)
        self.assertAlmostEqual(body["overall_score"], expected)
        self.assertIn("📈 Overall Score:", body["report"])
        self.assertIn("Good technical skills coverage", body["recommendations"])

    def test_report_requires_text(self):
        response = self.client.post("/v1/resume/report", json={"resume_text": "  "})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Please upload or paste your resume first")


class ResumeScoreFormatTests(unittest.TestCase):
    def test_whole_score_has_no_decimals(self):
        self.assertEqual(format_score(82.0), "82")
        self.assertEqual(format_score(100), "100")

    def test_fractional_score_keeps_full_precision(self):
        self.assertEqual(format_score(75.1234567), "75.1234567")
        self.assertEqual(format_score(70.3), "70.3")

    def test_report_shows_unrounded_score(self):
        text = "word word word Python"
        report = build_resume_report(text)
        self.assertAlmostEqual(report.overall_score, 73.4)
        self.assertIn(f"📈 Overall Score: {format_score(report.overall_score)}/100", report.report)
        self.assertNotIn("Overall Score: 73/100", report.report)


class ResumeAnalyzeApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)

    def test_missing_file(self):
        response = self.client.post("/v1/resume/analyze", data={"job_description": "Backend role"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "No resume file provided")

    def test_non_pdf_rejected(self):
        response = self.client.post(
            "/v1/resume/analyze",
            files={"resume": ("resume.txt", b"plain text", "text/plain")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "Please upload a valid PDF file")

    def test_empty_pdf_rejected(self):
        response = self.client.post(
            "/v1/resume/analyze",
            files={"resume": ("resume.pdf", b"", "application/pdf")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "The uploaded file is empty")

    def test_corrupt_pdf_rejected(self):
        response = self.client.post(
            "/v1/resume/analyze",
            files={"resume": ("resume.pdf", b"definitely not a pdf", "application/pdf")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()["detail"].startswith("Unable to read the PDF file"))

    def test_pdf_without_text_rejected(self):
        response = self.client.post(
            "/v1/resume/analyze",
            files={"resume": ("resume.pdf", blank_pdf(), "application/pdf")},
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"], "The PDF file appears to be empty or unreadable")

    def test_analysis_success_accepts_fenced_camel_case_json(self):
        reply = "```json\n" + json.dumps(
            {
                "score": 86.6,
                "strengths": ["Clear impact statements"],
                "improvements": ["Replace 'responsible for'"],
                "atsOptimization": ["Use standard headings"],
                "keywordAnalysis": {"python": 4, "sql": 2, "teamwork": "high"},
                "sentiment": "Confident",
            }
        ) + "\n```"
        fake = FakeAI(reply)
        with patch("scistu.api.v1.resume.read_pdf", return_value=("Python developer with SQL", 1)), patch(
            "scistu.services.resume_service.get_model", return_value=fake
        ):
            response = self.client.post(
                "/v1/resume/analyze",
                files={"resume": ("resume.pdf", b"%PDF-1.4 stub", "application/pdf")},
                data={"job_description": "Data engineer"},
            )

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["score"], 87)
        self.assertEqual(body["ats_optimization"], ["Use standard headings"])
        self.assertEqual(body["keyword_analysis"], {"python": 4.0, "sql": 2.0})
        self.assertEqual(body["sentiment"], "Confident")
        self.assertIn("Job Match: Data engineer", fake.messages[0].content)
        self.assertEqual(fake.messages[1].content, "Python developer with SQL")

    def test_unparseable_model_reply_returns_500(self):
        with patch("scistu.api.v1.resume.read_pdf", return_value=("Python developer", 1)), patch(
            "scistu.services.resume_service.get_model", return_value=FakeAI("I cannot help with that.")
        ):
            response = self.client.post(
                "/v1/resume/analyze",
                files={"resume": ("resume.pdf", b"%PDF-1.4 stub", "application/pdf")},
            )
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"], "Failed to analyze the resume content")


if __name__ == "__main__":
    unittest.main()
