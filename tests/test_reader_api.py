import os
import unittest
from io import BytesIO
from unittest.mock import patch

os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
os.environ.setdefault("ACCESS_MODE", "public")

from fastapi.testclient import TestClient
from pypdf import PdfWriter

from scistu.main import app
from scistu.services.reader_service import ReaderValidationError, ReaderWorkspace, WorkspaceStore, workspaces


def blank_pdf(pages: int = 1) -> bytes:
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class FakeAI:
    def __init__(self, reply="The passage argues that enzymes lower activation energy.", error=None):
        self.reply = reply
        self.error = error
        self.messages = None

    async def complete(self, messages, params):
        self.messages = list(messages)
        if self.error:
            raise self.error
        return self.reply


class ReaderApiTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.client = TestClient(app)
        cls.headers = {"X-Session-Id": "reader-session"}

    def setUp(self):
        workspaces.clear()

    def _upload(self, folder_id="default", pages=1):
        response = self.client.post(
            f"/v1/reader/folders/{folder_id}/articles",
            files={"file": ("enzymes.pdf", blank_pdf(pages), "application/pdf")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_default_folder_exists(self):
        response = self.client.get("/v1/reader/folders", headers=self.headers)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(
            response.json(),
            [{"id": "default", "name": "All in One Articles", "article_count": 0}],
        )

    def test_create_folder(self):
        response = self.client.post("/v1/reader/folders", json={"name": " Biology "}, headers=self.headers)
        self.assertEqual(response.status_code, 201)
        folder = response.json()
        self.assertEqual(folder["name"], "Biology")

        folders = self.client.get("/v1/reader/folders", headers=self.headers).json()
        self.assertEqual([f["name"] for f in folders], ["All in One Articles", "Biology"])

    def test_blank_folder_name_rejected(self):
        response = self.client.post("/v1/reader/folders", json={"name": "   "}, headers=self.headers)
        self.assertEqual(response.status_code, 400)

    def test_default_folder_cannot_be_deleted(self):
        response = self.client.delete("/v1/reader/folders/default", headers=self.headers)
        self.assertEqual(response.status_code, 400)

    def test_upload_article_with_no_text(self):
        article = self._upload(pages=2)
        self.assertEqual(article["name"], "enzymes.pdf")
        self.assertEqual(article["content"], "Could not extract text content")
        self.assertEqual(article["num_pages"], 2)
        self.assertEqual(article["comments"], [])

        folder = self.client.get("/v1/reader/folders/default", headers=self.headers).json()
        self.assertEqual(len(folder["articles"]), 1)
        self.assertEqual(folder["articles"][0]["comment_count"], 0)

        pdf = self.client.get(f"/v1/reader/articles/{article['id']}/file", headers=self.headers)
        self.assertEqual(pdf.status_code, 200)
        self.assertEqual(pdf.headers["content-type"], "application/pdf")
        self.assertTrue(pdf.content.startswith(b"%PDF-"))

    def test_upload_into_missing_folder(self):
        response = self.client.post(
            "/v1/reader/folders/missing/articles",
            files={"file": ("a.pdf", blank_pdf(), "application/pdf")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 404)

    def test_non_pdf_upload_rejected(self):
        response = self.client.post(
            "/v1/reader/folders/default/articles",
            files={"file": ("notes.txt", b"hello", "text/plain")},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

        spoofed = self.client.post(
            "/v1/reader/folders/default/articles",
            files={"file": ("notes.pdf", b"hello", "application/pdf")},
            headers=self.headers,
        )
        self.assertEqual(spoofed.status_code, 400)

    def test_human_comment_marker_and_page_filter(self):
        article = self._upload()
        response = self.client.post(
            f"/v1/reader/articles/{article['id']}/comments",
            json={"text": "Check this figure", "position": {"x": 100, "y": 50}, "page_number": 1},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 201)
        comment = response.json()
        self.assertFalse(comment["is_ai"])
        self.assertEqual(comment["marker"], {"x": 92.0, "y": 42.0})

        page_one = self.client.get(
            f"/v1/reader/articles/{article['id']}/comments",
            params={"page_number": 1},
            headers=self.headers,
        ).json()
        page_two = self.client.get(
            f"/v1/reader/articles/{article['id']}/comments",
            params={"page_number": 2},
            headers=self.headers,
        ).json()
        self.assertEqual(len(page_one), 1)
        self.assertEqual(page_two, [])

    def test_blank_human_comment_rejected(self):
        article = self._upload()
        response = self.client.post(
            f"/v1/reader/articles/{article['id']}/comments",
            json={"text": "  "},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 400)

    def test_ai_comment_uses_selected_text(self):
        article = self._upload()
        fake = FakeAI()
        with patch("scistu.services.reader_service.get_model", return_value=fake):
            response = self.client.post(
                f"/v1/reader/articles/{article['id']}/comments",
                json={"is_ai": True, "selected_text": "Enzymes lower activation energy.", "page_number": 1},
                headers=self.headers,
            )
        self.assertEqual(response.status_code, 201)
        comment = response.json()
        self.assertTrue(comment["is_ai"])
        self.assertEqual(comment["text"], fake.reply)
        self.assertIn("Enzymes lower activation energy.", fake.messages[-1].content)

    def test_ai_comment_failure_stores_nothing(self):
        article = self._upload()
        with patch("scistu.services.reader_service.get_model", return_value=FakeAI(error=RuntimeError("timeout"))):
            response = self.client.post(
                f"/v1/reader/articles/{article['id']}/comments",
                json={"is_ai": True},
                headers=self.headers,
            )
        self.assertEqual(response.status_code, 502)
        comments = self.client.get(f"/v1/reader/articles/{article['id']}/comments", headers=self.headers).json()
        self.assertEqual(comments, [])

    def test_delete_comment_and_article(self):
        article = self._upload()
        comment = self.client.post(
            f"/v1/reader/articles/{article['id']}/comments",
            json={"text": "note"},
            headers=self.headers,
        ).json()

        url = f"/v1/reader/articles/{article['id']}/comments/{comment['id']}"
        self.assertEqual(self.client.delete(url, headers=self.headers).status_code, 204)
        self.assertEqual(self.client.delete(url, headers=self.headers).status_code, 404)

        article_url = f"/v1/reader/articles/{article['id']}"
        self.assertEqual(self.client.delete(article_url, headers=self.headers).status_code, 204)
        self.assertEqual(self.client.get(article_url, headers=self.headers).status_code, 404)

    def test_delete_folder_removes_articles(self):
        folder = self.client.post("/v1/reader/folders", json={"name": "Chem"}, headers=self.headers).json()
        article = self._upload(folder_id=folder["id"])
        self.assertEqual(self.client.delete(f"/v1/reader/folders/{folder['id']}", headers=self.headers).status_code, 204)
        self.assertEqual(
            self.client.get(f"/v1/reader/articles/{article['id']}", headers=self.headers).status_code,
            404,
        )

    def test_sessions_are_isolated(self):
        self._upload()
        other = self.client.get("/v1/reader/folders/default", headers={"X-Session-Id": "someone-else"})
        self.assertEqual(other.json()["articles"], [])

    def test_long_article_text_is_previewed(self):
        with patch("scistu.services.reader_service.read_pdf", return_value=("x" * 600, 3)):
            article = self._upload()
        self.assertEqual(article["content"], "x" * 500 + "...")
        self.assertEqual(article["num_pages"], 3)

    def test_upload_over_article_limit_rejected(self):
        with patch.object(workspaces, "get", return_value=ReaderWorkspace(max_articles=1)):
            self._upload()
            response = self.client.post(
                "/v1/reader/folders/default/articles",
                files={"file": ("second.pdf", blank_pdf(), "application/pdf")},
                headers=self.headers,
            )
        self.assertEqual(response.status_code, 400)
        self.assertIn("Article limit reached (1)", response.json()["detail"])


class ReaderWorkspaceTests(unittest.TestCase):
    def test_article_limit_counts_every_folder(self):
        workspace = ReaderWorkspace(max_articles=1)
        folder = workspace.create_folder("Biology")
        workspace.add_article("default", "one.pdf", blank_pdf())
        with self.assertRaises(ReaderValidationError):
            workspace.add_article(folder.id, "two.pdf", blank_pdf())
        self.assertEqual(workspace.article_count(), 1)


class WorkspaceStoreTests(unittest.TestCase):
    def test_idle_sessions_expire(self):
        store = WorkspaceStore(ttl_s=60)
        first = store.get("a", now=0)
        store.get("b", now=30)
        store.get("c", now=100)

        self.assertEqual(len(store), 1)
        self.assertIsNot(store.get("a", now=101), first)

    def test_recent_use_keeps_session(self):
        store = WorkspaceStore(ttl_s=60)
        first = store.get("a", now=0)
        store.get("a", now=50)
        self.assertIs(store.get("a", now=100), first)

    def test_missing_session_id_shares_anonymous_workspace(self):
        store = WorkspaceStore(ttl_s=60)
        self.assertIs(store.get(None, now=0), store.get("  ", now=1))


if __name__ == "__main__":
    unittest.main()
