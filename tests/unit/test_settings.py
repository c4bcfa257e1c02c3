"""Tests for DocShareSettings."""

from pathlib import Path

from docshare.app.settings import DEFAULT_CORS_ORIGINS, DocShareSettings


class TestDefaults:

    def test_local_defaults_are_valid(self):
        settings = DocShareSettings()
        assert settings.validate() == []
        assert settings.is_local
        assert settings.base_url == 'http://localhost:3000'
        assert settings.uploads_dir == Path('data') / 'uploads'

    def test_base_url_strips_trailing_slash(self):
        settings = DocShareSettings(public_base_url='https://docs.example.com/')
        assert settings.base_url == 'https://docs.example.com'


class TestValidate:

    def test_unknown_backend(self):
        errors = DocShareSettings(storage_backend='redis').validate()
        assert any('storage_backend' in e for e in errors)

    def test_bcrypt_rounds_range(self):
        assert DocShareSettings(bcrypt_rounds=3).validate()
        assert DocShareSettings(bcrypt_rounds=32).validate()
        assert DocShareSettings(bcrypt_rounds=4).validate() == []

    def test_session_ttl_positive(self):
        assert DocShareSettings(session_ttl_hours=0).validate()

    def test_production_requires_public_url_and_smtp(self):
        errors = DocShareSettings(environment='production').validate()
        joined = '\n'.join(errors)
        assert 'public_base_url' in joined
        assert 'smtp_host' in joined
        assert 'contact_recipient' in joined

    def test_production_rejects_localhost_url(self):
        errors = DocShareSettings(
            environment='production',
            public_base_url='http://localhost:3000',
            smtp_host='smtp.example.com',
            contact_recipient='owner@example.com',
        ).validate()
        assert len(errors) == 1

    def test_complete_production_config(self):
        settings = DocShareSettings(
            environment='production',
            public_base_url='https://docs.example.com',
            smtp_host='smtp.example.com',
            contact_recipient='owner@example.com',
        )
        assert settings.validate() == []


class TestFromEnv:

    def test_empty_env_gives_defaults(self):
        settings = DocShareSettings.from_env({})
        assert settings == DocShareSettings()
        assert settings.cors_origins == DEFAULT_CORS_ORIGINS

    def test_reads_values(self):
        settings = DocShareSettings.from_env({
            'ENVIRONMENT': 'staging',
            'PORT': '8080',
            'BASE_URL': 'https://stage.example.com',
            'DATA_DIR': '/var/lib/docshare',
            'BCRYPT_ROUNDS': '12',
            'SESSION_TTL_HOURS': '2',
            'CORS_ORIGINS': 'https://a.example.com, https://b.example.com',
            'SMTP_HOST': 'smtp.example.com',
            'SMTP_PORT': '465',
            'SMTP_USE_TLS': 'false',
            'CONTACT_RECIPIENT': 'owner@example.com',
        })
        assert settings.environment == 'staging'
        assert settings.port == 8080
        assert settings.data_dir == Path('/var/lib/docshare')
        assert settings.bcrypt_rounds == 12
        assert settings.session_ttl_hours == 2
        assert settings.cors_origins == ('https://a.example.com', 'https://b.example.com')
        assert settings.smtp_port == 465
        assert settings.smtp_use_tls is False
        assert settings.validate() == []
