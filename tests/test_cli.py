"""
Tests for the command-line interface
"""

import logging
import re

import pytest
from click.testing import CliRunner
from loguru import logger

from docflow.cli import cli
from docflow.storage import JsonFileRecordStore

from conftest import SAMPLE_INVOICE, SAMPLE_CONTRACT

DOC_ID = re.compile(r'doc_[0-9a-f]{12}')


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger.remove()
    logging.basicConfig(handlers=[], level=logging.WARNING, force=True)


class TestCli:

    def setup_method(self):
        self.runner = CliRunner()

    def invoke(self, tmp_path, *args):
        store = tmp_path / 'store.json'
        return self.runner.invoke(cli, ['--store', str(store), *args])

    def add(self, tmp_path, name, text, doc_type, *extra):
        path = tmp_path / name
        path.write_text(text, encoding='utf-8')
        result = self.invoke(tmp_path, 'add', str(path), '--type', doc_type, *extra)
        assert result.exit_code == 0, result.output
        return DOC_ID.search(result.output).group(0)

    def test_types(self, tmp_path):
        result = self.invoke(tmp_path, 'types')

        assert result.exit_code == 0
        assert 'invoice' in result.output
        assert 'contract' in result.output

    def test_analyze_json(self, tmp_path):
        path = tmp_path / 'inv.txt'
        path.write_text(SAMPLE_INVOICE, encoding='utf-8')

        result = self.invoke(tmp_path, 'analyze', str(path), '--type', 'invoice', '--json')

        assert result.exit_code == 0
        assert '"Amount": "$1,200"' in result.output
        assert '"risk_score": 0' in result.output
        assert not (tmp_path / 'store.json').exists()

    def test_add_and_process(self, tmp_path):
        doc_id = self.add(tmp_path, 'inv.txt', SAMPLE_INVOICE, 'invoice')

        result = self.invoke(tmp_path, 'process', doc_id)

        assert result.exit_code == 0, result.output
        assert 'approved' in result.output
        assert 'Auto Approve Simple Documents' in result.output

        store = JsonFileRecordStore(tmp_path / 'store.json')
        assert store.get_by_id(doc_id).auto_approved is True

    def test_review_cycle(self, tmp_path):
        assert self.invoke(tmp_path, 'add-user', 'u_alice', '--username', 'alice').exit_code == 0
        doc_id = self.add(tmp_path, 'agreement.txt', SAMPLE_CONTRACT, 'contract', '--process')

        pending = self.invoke(tmp_path, 'pending')
        assert doc_id in pending.output

        result = self.invoke(tmp_path, 'reject', doc_id, '--reviewer', 'u_alice', '--reason', 'Unsigned')
        assert result.exit_code == 0, result.output
        assert 'Document rejected' in result.output

        stats = self.invoke(tmp_path, 'stats')
        assert 'Rejected' in stats.output

        export = self.invoke(tmp_path, 'audit-export')
        lines = export.output.splitlines()
        assert lines[0] == 'Timestamp,User,Action,Document,Details,Comments'
        assert any('"alice","reject","agreement.txt"' in line for line in lines)

    def test_audit_export_to_file(self, tmp_path):
        self.add(tmp_path, 'inv.txt', SAMPLE_INVOICE, 'invoice')
        out = tmp_path / 'audit.csv'

        result = self.invoke(tmp_path, 'audit-export', '-o', str(out))

        assert result.exit_code == 0
        assert out.read_text(encoding='utf-8').startswith('Timestamp,User,Action')

    def test_blank_reason_fails(self, tmp_path):
        doc_id = self.add(tmp_path, 'agreement.txt', SAMPLE_CONTRACT, 'contract', '--process')

        result = self.invoke(tmp_path, 'reject', doc_id, '--reviewer', 'u_alice', '--reason', ' ')

        assert result.exit_code == 1
        assert 'Rejection reason is required' in result.output

    def test_unknown_document_fails(self, tmp_path):
        result = self.invoke(tmp_path, 'process', 'doc_000000000000')

        assert result.exit_code == 1
        assert 'Document not found: doc_000000000000' in result.output

    def test_empty_pending(self, tmp_path):
        result = self.invoke(tmp_path, 'pending')
        assert 'No documents pending review' in result.output

    def test_analyze_shows_keywords(self, tmp_path):
        path = tmp_path / 'inv.txt'
        path.write_text(SAMPLE_INVOICE, encoding='utf-8')

        result = self.invoke(tmp_path, 'analyze', str(path), '--type', 'invoice')

        assert result.exit_code == 0, result.output
        assert 'Keywords: Acme, Corp, contact' in result.output

    def test_documents_and_delete(self, tmp_path):
        assert self.invoke(tmp_path, 'add-user', 'u_alice', '--username', 'alice').exit_code == 0
        mine = self.add(tmp_path, 'a.txt', SAMPLE_INVOICE, 'invoice', '--user', 'u_alice')
        other = self.add(tmp_path, 'b.txt', SAMPLE_INVOICE, 'invoice')

        listed = self.invoke(tmp_path, 'documents', '--user', 'u_alice')
        assert mine in listed.output
        assert other not in listed.output

        result = self.invoke(tmp_path, 'delete', mine, '--user', 'u_alice')
        assert result.exit_code == 0, result.output
        assert 'Document deleted' in result.output

        assert mine not in self.invoke(tmp_path, 'documents').output
        assert self.invoke(tmp_path, 'delete', mine).exit_code == 1

    def test_export_import(self, tmp_path):
        doc_id = self.add(tmp_path, 'inv.txt', SAMPLE_INVOICE, 'invoice')
        exported = tmp_path / 'export.json'

        result = self.invoke(tmp_path, 'export', '-o', str(exported))
        assert result.exit_code == 0, result.output

        other_store = tmp_path / 'other.json'
        result = self.runner.invoke(cli, ['--store', str(other_store), 'import', str(exported)])

        assert result.exit_code == 0, result.output
        assert 'Imported 0 users, 1 documents, 3 audit log' in result.output
        assert JsonFileRecordStore(other_store).get_by_id(doc_id).name == 'inv.txt'

    def test_import_rejects_malformed_file(self, tmp_path):
        bad = tmp_path / 'bad.json'
        bad.write_text('{"documents": [{"name": "no id"}]}', encoding='utf-8')

        result = self.invoke(tmp_path, 'import', str(bad))

        assert result.exit_code == 1
        assert 'Malformed import data' in result.output
