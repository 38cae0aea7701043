import json
from unittest.mock import patch
from leadform.observability.logging import log
from leadform.settings import settings


def test_sensitive_fields_redacted(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", True):
        log(event="confirm_sending", email="ana@example.com", tier="Hot",
            template_params={"to_email": "ana@example.com", "lead_tier": "Hot"})
    line = json.loads(capsys.readouterr().out.strip())
    assert line["event"] == "confirm_sending"
    assert line["email"] == "[REDACTED:15chars]"
    assert line["tier"] == "Hot"
    assert line["template_params"]["to_email"].startswith("[REDACTED")


def test_nested_mapping_masks_only_sensitive_members(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", True):
        log(event="x", data={"first": "Ana", "lead_score": 13})
    line = json.loads(capsys.readouterr().out.strip())
    assert line["data"] == {"first": "[REDACTED:3chars]", "lead_score": 13}


def test_redaction_disabled(capsys):
    with patch.object(settings, "ENABLE_PII_REDACTION", False):
        log(event="x", email="ana@example.com")
    line = json.loads(capsys.readouterr().out.strip())
    assert line["email"] == "ana@example.com"
