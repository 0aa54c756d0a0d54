import re
import tempfile
import unittest
from pathlib import Path

from travelstory.storage import (
    InMemoryStorageClient,
    LocalStorageClient,
    key_from_url,
    make_blob_name,
)

BASE = "http://localhost:8000/uploads"


class BlobNameTests(unittest.TestCase):
    def test_name_keeps_extension_and_is_unique(self):
        names = {make_blob_name("Holiday.JPG") for _ in range(50)}
        self.assertEqual(len(names), 50)
        for name in names:
            self.assertRegex(name, r"^\d{13}-[0-9a-f]{8}\.jpg$")

    def test_key_from_url(self):
        self.assertEqual(key_from_url(f"{BASE}/123-abc.png", BASE), "123-abc.png")
        self.assertIsNone(key_from_url("http://localhost:8000/assets/placeholder.png", BASE))
        self.assertIsNone(key_from_url("http://elsewhere.test/uploads/a.png", BASE))
        self.assertIsNone(key_from_url(f"{BASE}/../secrets.txt", BASE))
        self.assertIsNone(key_from_url(f"{BASE}/nested/a.png", BASE))
        self.assertIsNone(key_from_url("", BASE))


class LocalStorageClientTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "uploads"
        self.storage = LocalStorageClient(root_dir=str(self.root), base_url=BASE)

    def tearDown(self):
        self._tmp.cleanup()

    def test_save_and_delete(self):
        url = self.storage.save_image(b"png-bytes", "photo.png")
        key = re.sub(rf"^{re.escape(BASE)}/", "", url)
        self.assertEqual((self.root / key).read_bytes(), b"png-bytes")

        self.assertTrue(self.storage.delete_image(url))
        self.assertFalse((self.root / key).exists())
        self.assertFalse(self.storage.delete_image(url))

    def test_foreign_urls_are_left_alone(self):
        outside = Path(self._tmp.name) / "keep.png"
        outside.write_bytes(b"x")
        self.assertFalse(self.storage.delete_image(f"{BASE}/../keep.png"))
        self.assertTrue(outside.exists())


class InMemoryStorageClientTests(unittest.TestCase):
    def test_delete_is_idempotent(self):
        storage = InMemoryStorageClient(base_url=BASE)
        url = storage.save_image(b"data", "a.gif")
        self.assertTrue(storage.delete_image(url))
        self.assertFalse(storage.delete_image(url))
        self.assertEqual(storage.stored_objects, {})


if __name__ == "__main__":
    unittest.main()
