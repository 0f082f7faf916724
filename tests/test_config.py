"""
Tests for configuration loading and document type files
"""

import json

import pytest

from docflow.config import DocflowConfig, load_config, merge_config
from docflow.doctypes.builtin_types import register_builtin_types
from docflow.doctypes.registry import DocumentTypeRegistry
from docflow.exceptions import ValidationError
from docflow.storage.memory import InMemoryRecordStore
from docflow.workflow import DocumentWorkflow

from conftest import SAMPLE_INVOICE


class TestLoadConfig:

    def test_defaults_match_builtin_model(self):
        config = load_config()

        assert config.risk_model.version == '1.0'
        assert [t.name for t in config.risk_model.keyword_tiers] == ['high_risk', 'medium_risk']
        assert config.risk_model.keyword_tiers[0].cap == 6
        assert config.risk_model.sparsity_penalties == (3, 2, 1)
        assert config.rules.high_risk_score == 7
        assert config.rules.large_amount == 10000
        assert config.audit_max_entries == 1000

    def test_override_merges(self, tmp_path):
        path = tmp_path / 'docflow.yaml'
        path.write_text(
            "risk_model:\n"
            "  version: '2.0'\n"
            "rules:\n"
            "  large_amount: 2500\n"
            "audit:\n"
            "  max_entries: 50\n",
            encoding='utf-8',
        )

        config = load_config(path)

        assert config.risk_model.version == '2.0'
        # untouched keys keep their defaults
        assert len(config.risk_model.keyword_tiers) == 2
        assert config.rules.large_amount == 2500
        assert config.rules.high_risk_score == 7
        assert config.audit_max_entries == 50

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("rules: [unclosed", encoding='utf-8')

        with pytest.raises(ValidationError):
            load_config(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text("- a\n- b\n", encoding='utf-8')

        with pytest.raises(ValidationError):
            load_config(path)

    def test_bad_values(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("audit:\n  max_entries: 0\n", encoding='utf-8')

        with pytest.raises(ValidationError):
            load_config(path)

    def test_amounts_written_with_separators(self, tmp_path):
        path = tmp_path / 'money.yaml'
        path.write_text(
            "rules:\n"
            "  large_amount: 10,000\n"
            "  moderate_amount: '$2,500'\n"
            "risk_model:\n"
            "  version: 2.0\n",
            encoding='utf-8',
        )

        config = load_config(path)

        assert config.rules.large_amount == 10000
        assert config.rules.moderate_amount == 2500
        assert config.risk_model.version == '2.0'

    @pytest.mark.parametrize('rules', [
        'large_amount: lots',
        'high_risk_score: -1',
        'min_fields: [1, 2]',
    ])
    def test_bad_thresholds(self, tmp_path, rules):
        path = tmp_path / 'bad.yaml'
        path.write_text(f"rules:\n  {rules}\n", encoding='utf-8')

        with pytest.raises(ValidationError) as exc_info:
            load_config(path)

        assert 'rules.' in exc_info.value.message

    def test_score_range(self, tmp_path):
        path = tmp_path / 'bad.yaml'
        path.write_text("risk_model:\n  min_score: 9\n  max_score: 1\n", encoding='utf-8')

        with pytest.raises(ValidationError):
            load_config(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValidationError):
            load_config(tmp_path / 'missing.yaml')

    def test_merge_config(self):
        merged = merge_config({'a': {'b': 1, 'c': 2}, 'l': [1]}, {'a': {'c': 3}, 'l': [2]})
        assert merged == {'a': {'b': 1, 'c': 3}, 'l': [2]}


class TestConfiguredWorkflow:

    def test_thresholds_drive_decisions(self, tmp_path):
        path = tmp_path / 'strict.yaml'
        path.write_text("rules:\n  large_amount: 1000\n", encoding='utf-8')

        workflow = DocumentWorkflow(InMemoryRecordStore(), config=load_config(path))
        doc = workflow.add_document('inv.txt', 'invoice', SAMPLE_INVOICE)
        decision = workflow.process_document(doc.id)

        assert decision.applied_rules == ('Large Amount Review',)

    def test_document_type_files(self, tmp_path):
        type_file = tmp_path / 'receipt.json'
        type_file.write_text(json.dumps({'types': {'receipt': {
            'name': 'receipt',
            'display_name': 'Receipt',
            'fields': [
                {'name': 'Receipt Number', 'field_type': 'identifier', 'patterns': [r'receipt\s*#\s*(\d+)']},
                {'name': 'Total', 'field_type': 'currency', 'patterns': [r'\$\s*([0-9,]+\.?[0-9]*)']},
            ],
            'critical_fields': ['Receipt Number', 'Total'],
            'amount_fields': ['Total'],
        }}}), encoding='utf-8')

        config_file = tmp_path / 'docflow.yaml'
        config_file.write_text("document_types:\n  - receipt.json\n", encoding='utf-8')

        registry = DocumentTypeRegistry()
        register_builtin_types(registry)
        workflow = DocumentWorkflow(
            InMemoryRecordStore(),
            config=load_config(config_file),
            registry=registry,
        )

        doc = workflow.add_document('r.txt', 'receipt', 'Receipt #42 total $12.50')
        decision = workflow.process_document(doc.id)

        assert workflow.get_document(doc.id).extracted_fields == {
            'Receipt Number': '42',
            'Total': '$12.50',
        }
        assert decision.auto_approved is True
        assert 'amount $12.5 under threshold' in decision.reason

    def test_default_config_object(self):
        config = DocflowConfig()
        assert config.rules.auto_approve_max_risk == 3
