import os
import tempfile
import unittest
from unittest.mock import MagicMock, patch

from chronotope import model_assets


class TestModelAssets(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = self._tmp.name

    def tearDown(self):
        self._tmp.cleanup()

    def test_default_model_path(self):
        path = model_assets.default_model_path("pose", self.tmp)
        self.assertEqual(path, os.path.join(self.tmp, "pose_landmarker_full.task"))
        with self.assertRaises(ValueError):
            model_assets.default_model_path("face", self.tmp)

    @patch("chronotope.model_assets.urllib.request.urlopen")
    def test_existing_file_is_not_downloaded(self, mock_urlopen):
        path = os.path.join(self.tmp, "hand_landmarker.task")
        with open(path, "wb") as f:
            f.write(b"model")
        self.assertEqual(model_assets.ensure_task_asset(path, model_assets.TASK_URLS["hand"]), path)
        mock_urlopen.assert_not_called()

    @patch("chronotope.model_assets.urllib.request.urlopen")
    def test_download(self, mock_urlopen):
        response = MagicMock()
        response.read.return_value = b"model-bytes"
        response.__enter__.return_value = response
        mock_urlopen.return_value = response

        path = os.path.join(self.tmp, "nested", "gesture_recognizer.task")
        self.assertEqual(model_assets.ensure_task_asset(path, "https://example.invalid/m.task"), path)
        with open(path, "rb") as f:
            self.assertEqual(f.read(), b"model-bytes")
        self.assertEqual(mock_urlopen.call_args[0][0], "https://example.invalid/m.task")

    @patch("chronotope.model_assets.subprocess.run")
    @patch("chronotope.model_assets.urllib.request.urlopen")
    def test_download_failure_raises_with_hint(self, mock_urlopen, mock_run):
        mock_urlopen.side_effect = OSError("CERTIFICATE_VERIFY_FAILED")
        mock_run.return_value = MagicMock(returncode=6, stderr="curl: (6) Could not resolve host")

        path = os.path.join(self.tmp, "hand_landmarker.task")
        with self.assertRaises(RuntimeError) as ctx:
            model_assets.ensure_task_asset(path, "https://example.invalid/m.task")

        self.assertIn("curl -L -o", str(ctx.exception))
        self.assertIn("Could not resolve host", str(ctx.exception))
        self.assertFalse(os.path.exists(path))
        self.assertEqual(mock_run.call_args[0][0][0], "curl")


if __name__ == "__main__":
    unittest.main()
