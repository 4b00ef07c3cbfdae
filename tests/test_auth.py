import os
import tempfile
import unittest

from flask import Flask

from survey_intake.auth import SharedSecretAuthorizer


class TestSharedSecretAuthorizer(unittest.TestCase):
    def setUp(self) -> None:
        self.app = Flask(__name__)
        self.authorizer = SharedSecretAuthorizer("s3cret")

    def _allowed(self, **request_kwargs: object) -> bool:
        with self.app.test_request_context("/api/responses", **request_kwargs) as ctx:
            return self.authorizer.authorize(ctx.request)

    def test_header_key_accepted(self) -> None:
        self.assertTrue(self._allowed(headers={"x-admin-key": "s3cret"}))

    def test_query_parameter_key_accepted(self) -> None:
        self.assertTrue(self._allowed(query_string={"admin_key": "s3cret"}))

    def test_missing_key_denied(self) -> None:
        self.assertFalse(self._allowed())

    def test_wrong_or_partial_key_denied(self) -> None:
        self.assertFalse(self._allowed(headers={"x-admin-key": "s3cre"}))
        self.assertFalse(self._allowed(headers={"x-admin-key": "S3CRET"}))
        self.assertFalse(self._allowed(query_string={"admin_key": "s3cret "}))

    def test_empty_secret_not_allowed(self) -> None:
        with self.assertRaises(ValueError):
            SharedSecretAuthorizer("")


class AllowEveryone:
    def authorize(self, req: object) -> bool:
        return True


class TestCustomAuthorizer(unittest.TestCase):
    def test_app_uses_injected_authorizer(self) -> None:
        from survey_intake.app import create_app

        with tempfile.TemporaryDirectory() as tmpdir:
            app = create_app(
                testing=True,
                db_path=os.path.join(tmpdir, "app.db"),
                log_path=os.path.join(tmpdir, "app.log"),
                authorizer=AllowEveryone(),
            )
            response = app.test_client().get("/api/responses?survey=patient")
            self.assertEqual(200, response.status_code)
            self.assertEqual(0, response.get_json()["count"])


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
