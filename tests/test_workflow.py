"""
Tests for the workflow entry points

End-to-end runs of add -> process -> review against an in-memory store.
"""

import gc
import threading

import pytest

from docflow.audit import AuditAction
from docflow.config import DocflowConfig
from docflow.decision.decision_engine import RuleThresholds
from docflow.document import DocumentStatus
from docflow.exceptions import ExtractionError, NotFoundError, PersistenceError, ValidationError
from docflow.identity import Actor
from docflow.sources import PlainTextSource
from docflow.workflow import DocumentWorkflow

from conftest import SAMPLE_INVOICE, SAMPLE_CONTRACT


class FailingSource:
    def produce_text(self, path):
        raise ExtractionError(f"unreadable: {path}")


class FixedIdentity:
    def __init__(self, actor):
        self.actor = actor

    def current_actor(self):
        return self.actor


class TestProcessing:

    def test_end_to_end_invoice(self, workflow, store):
        doc = workflow.add_document('inv-a100.txt', 'invoice', SAMPLE_INVOICE)
        decision = workflow.process_document(doc.id)

        stored = store.get_by_id(doc.id)
        assert stored.extracted_fields == {
            'Invoice Number': 'A100',
            'Date': 'Jan 5, 2024',
            'Amount': '$1,200',
            'Email': 'a@b.com',
            'Vendor': 'Acme Corp',
        }
        assert stored.risk_score == 0
        assert stored.status is DocumentStatus.APPROVED
        assert stored.auto_approved is True
        assert decision.applied_rules == ('Auto Approve Simple Documents',)
        assert stored.workflow_reason == decision.reason

    def test_audit_trail(self, workflow):
        doc = workflow.add_document('inv-a100.txt', 'invoice', SAMPLE_INVOICE)
        workflow.process_document(doc.id)

        actions = [e.action for e in workflow.audit_log.get_document_logs(doc.id)]
        assert actions == ['upload_document', 'nlp_process', 'auto_approve']

    def test_contract_goes_to_review(self, workflow, store):
        doc = workflow.add_document('agreement.txt', 'contract', SAMPLE_CONTRACT)
        decision = workflow.process_document(doc.id)

        assert decision.status is DocumentStatus.NEEDS_REVIEW
        assert decision.reason == 'Missing critical fields: Parties'
        assert store.get_by_id(doc.id).risk_score == 1
        assert [d.id for d in workflow.get_pending_reviews()] == [doc.id]

    def test_empty_document_flagged(self, workflow, store):
        doc = workflow.add_document('blank.txt', 'invoice', '')
        decision = workflow.process_document(doc.id)

        assert decision.needs_review
        assert store.get_by_id(doc.id).risk_score == 3
        assert decision.applied_rules == ('Missing Fields Review',)

    def test_high_risk_text(self, workflow):
        text = SAMPLE_INVOICE + " Overdue: penalty for breach, lawsuit pending. Urgent notice."
        doc = workflow.add_document('inv.txt', 'invoice', text)
        decision = workflow.process_document(doc.id)

        assert decision.status is DocumentStatus.NEEDS_REVIEW
        assert decision.applied_rules == ('High Risk Review',)

    def test_flagged_document_is_not_reprocessed(self, workflow, store):
        text = SAMPLE_INVOICE.replace('$1,200', '$12,000')
        doc = workflow.add_document('inv.txt', 'invoice', text)
        decision = workflow.process_document(doc.id)
        assert decision.applied_rules == ('Large Amount Review',)

        lenient = DocumentWorkflow(store, config=DocflowConfig(
            rules=RuleThresholds(large_amount=1e9, auto_approve_max_amount=1e9),
        ))
        with pytest.raises(ValidationError):
            lenient.process_document(doc.id)

        stored = store.get_by_id(doc.id)
        assert stored.status is DocumentStatus.NEEDS_REVIEW
        assert stored.auto_approved is False
        assert stored.reviewed_by is None

    def test_terminal_document_cannot_be_processed(self, workflow):
        doc = workflow.add_document('inv.txt', 'invoice', SAMPLE_INVOICE)
        workflow.process_document(doc.id)

        with pytest.raises(ValidationError):
            workflow.process_document(doc.id)

    def test_unknown_document(self, workflow):
        with pytest.raises(NotFoundError):
            workflow.process_document('doc_missing')

        errors = workflow.audit_log.get_logs_by_action(AuditAction.SYSTEM_ERROR)
        assert len(errors) == 1
        assert errors[0].document_id == 'doc_missing'
        assert errors[0].metadata['error_code'] == 'DF-101'

    def test_explicit_actor(self, workflow):
        alice = Actor('u_alice', 'alice')
        doc = workflow.add_document('inv.txt', 'invoice', SAMPLE_INVOICE, actor=alice)
        workflow.process_document(doc.id, actor=alice)

        entry = workflow.audit_log.get_logs_by_action(AuditAction.AUTO_APPROVE)[0]
        assert entry.user_name == 'alice'
        assert workflow.get_document(doc.id).uploaded_by == 'u_alice'

    def test_identity_provider_fallback(self, store):
        workflow = DocumentWorkflow(store, identity=FixedIdentity(Actor('u_bot', 'intake-bot')))
        doc = workflow.add_document('inv.txt', 'invoice', SAMPLE_INVOICE)

        entry = workflow.audit_log.get_document_logs(doc.id)[0]
        assert entry.user_name == 'intake-bot'

    def test_blank_name_rejected(self, workflow):
        with pytest.raises(ValidationError):
            workflow.add_document('  ', 'invoice', SAMPLE_INVOICE)

    def test_analyze_does_not_store(self, workflow, store):
        analysis = workflow.analyze(SAMPLE_INVOICE, 'invoice')

        assert analysis.fields['Amount'] == '$1,200'
        assert analysis.risk_score == 0
        assert analysis.summary.startswith('#### Invoice Analysis')
        assert store.list_documents() == []

    def test_parallel_processing_of_distinct_documents(self, workflow, store):
        ids = [workflow.add_document(f'inv-{i}.txt', 'invoice', SAMPLE_INVOICE).id for i in range(8)]
        errors = []

        def run(document_id):
            try:
                workflow.process_document(document_id)
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=run, args=(i,)) for i in ids]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert all(store.get_by_id(i).status is DocumentStatus.APPROVED for i in ids)


class TestIngest:

    def test_plain_text(self, workflow, tmp_path):
        path = tmp_path / 'inv.txt'
        path.write_text(SAMPLE_INVOICE, encoding='utf-8')

        doc = workflow.ingest(path, 'invoice', PlainTextSource())

        assert doc.name == 'inv.txt'
        assert doc.raw_text == SAMPLE_INVOICE
        actions = [e.action for e in workflow.audit_log.get_logs()]
        assert actions == ['ocr_start', 'ocr_complete', 'upload_document']

    def test_source_failure(self, workflow):
        with pytest.raises(ExtractionError):
            workflow.ingest('scan.png', 'invoice', FailingSource())

        actions = [e.action for e in workflow.audit_log.get_logs()]
        assert actions == ['ocr_start', 'ocr_failed', 'system_error']
        assert workflow.store.list_documents() == []

    def test_missing_file(self, workflow, tmp_path):
        with pytest.raises(ExtractionError):
            workflow.ingest(tmp_path / 'missing.txt', 'invoice', PlainTextSource())


class TestManualReview:

    def setup_method(self):
        self.contract = SAMPLE_CONTRACT

    def _flagged(self, workflow):
        doc = workflow.add_document('agreement.txt', 'contract', self.contract)
        workflow.process_document(doc.id)
        return doc.id

    def test_approve(self, workflow, store):
        doc_id = self._flagged(workflow)
        result = workflow.approve_document(doc_id, 'u_alice', 'Parties verified')

        assert result == {'success': True, 'message': 'Document approved successfully'}
        stored = store.get_by_id(doc_id)
        assert stored.status is DocumentStatus.APPROVED
        assert stored.reviewed_by == 'u_alice'
        assert stored.reviewed_at
        assert stored.review_comments == 'Parties verified'
        assert stored.auto_approved is False

        entry = workflow.audit_log.get_logs_by_action(AuditAction.APPROVE)[0]
        assert entry.user_name == 'alice'
        assert entry.details == 'Document approved'
        assert entry.comments == 'Parties verified'

    def test_reject(self, workflow, store):
        doc_id = self._flagged(workflow)
        result = workflow.reject_document(doc_id, 'u_alice', 'Unsigned')

        assert result == {'success': True, 'message': 'Document rejected'}
        stored = store.get_by_id(doc_id)
        assert stored.status is DocumentStatus.REJECTED
        assert stored.rejection_reason == 'Unsigned'

    @pytest.mark.parametrize('reason', ['', '   ', None])
    def test_reject_requires_reason(self, workflow, store, reason):
        doc_id = self._flagged(workflow)
        before = store.get_by_id(doc_id)

        with pytest.raises(ValidationError):
            workflow.reject_document(doc_id, 'u_alice', reason)

        after = store.get_by_id(doc_id)
        assert after.status is DocumentStatus.NEEDS_REVIEW
        assert after.version == before.version

    def test_unknown_reviewer_is_named_unknown(self, workflow):
        doc_id = self._flagged(workflow)
        workflow.approve_document(doc_id, 'u_ghost')

        entry = workflow.audit_log.get_logs_by_action(AuditAction.APPROVE)[0]
        assert entry.user_id == 'u_ghost'
        assert entry.user_name == 'Unknown'

    def test_terminal_states_are_final(self, workflow):
        doc_id = self._flagged(workflow)
        workflow.reject_document(doc_id, 'u_alice', 'Unsigned')

        with pytest.raises(ValidationError):
            workflow.approve_document(doc_id, 'u_alice')
        with pytest.raises(ValidationError):
            workflow.reject_document(doc_id, 'u_alice', 'Again')

    def test_unknown_document(self, workflow):
        with pytest.raises(NotFoundError):
            workflow.approve_document('doc_missing', 'u_alice')

    def test_missing_document_checked_before_reviewer(self, workflow):
        with pytest.raises(NotFoundError):
            workflow.approve_document('doc_missing', '')
        with pytest.raises(NotFoundError):
            workflow.reject_document('doc_missing', '', '')

    def test_blank_reviewer(self, workflow):
        doc_id = self._flagged(workflow)
        with pytest.raises(ValidationError):
            workflow.approve_document(doc_id, '  ')

    def test_statistics(self, workflow):
        assert workflow.get_statistics() == {
            'total': 0,
            'auto_approved': 0,
            'manually_reviewed': 0,
            'pending': 0,
            'approved': 0,
            'rejected': 0,
            'average_risk_score': 0,
        }

        auto = workflow.add_document('inv.txt', 'invoice', SAMPLE_INVOICE)
        workflow.process_document(auto.id)
        flagged = self._flagged(workflow)
        rejected = self._flagged(workflow)
        workflow.reject_document(rejected, 'u_alice', 'Unsigned')

        stats = workflow.get_statistics()
        assert stats['total'] == 3
        assert stats['auto_approved'] == 1
        assert stats['manually_reviewed'] == 1
        assert stats['pending'] == 1
        assert stats['approved'] == 1
        assert stats['rejected'] == 1
        # scores 0, 1, 1
        assert stats['average_risk_score'] == 0.67
        assert flagged in [d.id for d in workflow.get_pending_reviews()]


class FlakyStore:
    """Delegates to a real store but fails every audit append."""

    def __init__(self, store):
        self._store = store

    def __getattr__(self, name):
        return getattr(self._store, name)

    def append(self, entry):
        raise PersistenceError('audit offline')


class TestErrorBoundary:

    def test_failed_audit_write_keeps_original_error(self, store):
        workflow = DocumentWorkflow(FlakyStore(store))

        with pytest.raises(NotFoundError):
            workflow.process_document('doc_missing')

    def test_unexpected_error_is_audited(self, store):
        workflow = DocumentWorkflow(store, config=DocflowConfig(
            rules=RuleThresholds(large_amount='10,000'),
        ))
        doc = workflow.add_document('inv.txt', 'invoice', SAMPLE_INVOICE)

        with pytest.raises(TypeError):
            workflow.process_document(doc.id)

        errors = workflow.audit_log.get_logs_by_action(AuditAction.SYSTEM_ERROR)
        assert len(errors) == 1
        assert errors[0].document_id == doc.id
        assert errors[0].details.startswith('process_document: ')
        assert errors[0].metadata['error_type'] == 'TypeError'


class TestInterruptedProcessing:
    """A run that dies after the processing write can be resumed."""

    def test_resume_after_failed_decision(self, workflow, store):
        doc = workflow.add_document('inv.txt', 'invoice', SAMPLE_INVOICE)
        engine = workflow.engine

        class BrokenEngine:
            def evaluate_rules(self, document):
                raise RuntimeError('rule backend unavailable')

        workflow.engine = BrokenEngine()
        with pytest.raises(RuntimeError):
            workflow.process_document(doc.id)

        stuck = store.get_by_id(doc.id)
        assert stuck.status is DocumentStatus.PROCESSING
        assert stuck.workflow_reason == ''

        workflow.engine = engine
        decision = workflow.process_document(doc.id)

        assert decision.auto_approved
        assert store.get_by_id(doc.id).status is DocumentStatus.APPROVED
        actions = [e.action for e in workflow.audit_log.get_document_logs(doc.id)]
        assert actions == [
            'upload_document', 'nlp_process', 'system_error', 'nlp_process', 'auto_approve',
        ]


class TestDocumentManagement:

    def test_delete(self, workflow, store):
        doc = workflow.add_document('inv.txt', 'invoice', SAMPLE_INVOICE)

        result = workflow.delete_document(doc.id, actor=Actor('u_alice', 'alice'))

        assert result == {'success': True, 'message': 'Document deleted'}
        assert store.get_by_id(doc.id) is None
        entry = workflow.audit_log.get_logs_by_action(AuditAction.DELETE)[0]
        assert entry.document_id == doc.id
        assert entry.document_name == 'inv.txt'
        assert entry.user_name == 'alice'

    def test_delete_unknown(self, workflow):
        with pytest.raises(NotFoundError):
            workflow.delete_document('doc_missing')

        assert workflow.audit_log.get_logs_by_action(AuditAction.SYSTEM_ERROR)[0].document_id == 'doc_missing'

    def test_documents_by_user(self, workflow):
        alice = Actor('u_alice', 'alice')
        mine = workflow.add_document('a.txt', 'invoice', SAMPLE_INVOICE, actor=alice)
        workflow.add_document('b.txt', 'invoice', SAMPLE_INVOICE)

        assert [d.id for d in workflow.get_documents_by_user('u_alice')] == [mine.id]

    def test_analysis_keywords(self, workflow):
        analysis = workflow.analyze(SAMPLE_INVOICE, 'invoice')

        assert analysis.keywords == ['Acme', 'Corp', 'contact']
        assert analysis.to_dict()['keywords'] == ['Acme', 'Corp', 'contact']

    def test_locks_are_released(self, workflow):
        doc = workflow.add_document('inv.txt', 'invoice', SAMPLE_INVOICE)
        workflow.process_document(doc.id)
        with pytest.raises(NotFoundError):
            workflow.process_document('doc_missing')
        gc.collect()

        assert len(workflow._locks) == 0
