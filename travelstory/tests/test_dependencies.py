import os
import tempfile
import unittest
from unittest.mock import patch

from travelstory import dependencies
from travelstory.db import InMemoryDbClient, PostgresDbClient
from travelstory.errors import ConfigurationError
from travelstory.storage import InMemoryStorageClient, LocalStorageClient


class DependencyWiringTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        # Keep a developer's .env out of the picture.
        self._cwd = os.getcwd()
        os.chdir(self._tmp.name)
        dependencies.reset_dependencies()

    def tearDown(self):
        dependencies.reset_dependencies()
        os.chdir(self._cwd)
        self._tmp.cleanup()

    def test_in_memory_backends(self):
        env = {"USE_IN_MEMORY_BACKENDS": "true", "ACCESS_TOKEN_SECRET": "s"}
        with patch.dict(os.environ, env, clear=True):
            self.assertIsInstance(dependencies.get_db_client(), InMemoryDbClient)
            self.assertIsInstance(
                dependencies.get_storage_client(), InMemoryStorageClient
            )
            service = dependencies.get_story_service()
            self.assertIs(service.db, dependencies.get_db_client())
            self.assertEqual(
                service.placeholder_image_url,
                "http://localhost:8000/assets/placeholder.png",
            )
            accounts = dependencies.get_account_service()
            self.assertEqual(accounts.hasher.rounds, 10)
            self.assertEqual(accounts.tokens.ttl.total_seconds(), 72 * 3600)

    def test_sql_database_and_local_uploads(self):
        env = {
            "DATABASE_URL": "sqlite+pysqlite:///:memory:",
            "UPLOADS_DIR": os.path.join(self._tmp.name, "uploads"),
        }
        with patch.dict(os.environ, env, clear=True):
            self.assertIsInstance(dependencies.get_db_client(), PostgresDbClient)
            storage = dependencies.get_storage_client()
            self.assertIsInstance(storage, LocalStorageClient)
            self.assertTrue(os.path.isdir(env["UPLOADS_DIR"]))

    def test_token_secret_is_required(self):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ConfigurationError):
                dependencies.get_token_codec()


if __name__ == "__main__":
    unittest.main()
