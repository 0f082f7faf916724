"""
Tests for the capitalised-run entity heuristics and markdown summaries.
"""

from docflow.parser.entities import capitalized_runs, find_organizations, find_people
from docflow.parser.keywords import extract_keywords
from docflow.parser.summary import generate_summary, split_sentences

from conftest import SAMPLE_INVOICE


class TestCapitalizedRuns:

    def test_runs_split_on_punctuation(self):
        runs = capitalized_runs("Acme Corp, Beta Labs")
        assert [[t.clean for t in run] for run in runs] == [['Acme', 'Corp'], ['Beta', 'Labs']]

    def test_runs_split_on_newline(self):
        runs = capitalized_runs("Acme\nCorp")
        assert len(runs) == 2

    def test_ampersand_joins(self):
        runs = capitalized_runs("Smith & Wesson Holdings")
        assert [t.clean for t in runs[0]] == ['Smith', '&', 'Wesson', 'Holdings']

    def test_empty(self):
        assert capitalized_runs("") == []


class TestOrganizations:

    def test_suffix(self):
        assert find_organizations("Payment from Acme Corp, thanks") == ['Acme Corp']

    def test_suffix_with_period(self):
        assert find_organizations("Billed by Globex Inc. on Monday") == ['Globex Inc']

    def test_leading_document_words_stripped(self):
        assert find_organizations("Vendor Initech Solutions") == ['Initech Solutions']

    def test_head_of(self):
        assert find_organizations("Wire to Bank of Boston today") == ['Bank of Boston']

    def test_fallback_multiword(self):
        assert find_organizations("Shipped via Northwind Traders yesterday") == ['Northwind Traders']

    def test_fallback_skips_people(self):
        assert find_organizations("Signed by John Smith") == []

    def test_none(self):
        assert find_organizations("nothing capitalised here") == []


class TestPeople:

    def test_given_names(self):
        text = "between John Smith and Jane Doe of Beta LLC"
        assert find_people(text) == ['John Smith', 'Jane Doe']
        assert find_organizations(text) == ['Beta LLC']

    def test_honorific(self):
        assert find_people("Attn: Dr. Ada Lovelace") == ['Ada Lovelace']

    def test_org_is_not_person(self):
        assert find_people("Paul Industries") == []

    def test_single_given_name_is_not_a_person(self):
        assert find_people("Ask Mary about it") == []


class TestSummary:

    def test_split_sentences(self):
        assert split_sentences("One. Two!  Three?") == ['One.', 'Two!', 'Three?']
        assert split_sentences("") == []

    def test_invoice_summary(self):
        fields = {
            'Invoice Number': 'A100',
            'Amount': '$1,200',
            'Date': 'Jan 5, 2024',
            'Vendor': 'Acme Corp',
        }
        summary = generate_summary("Invoice for services.", fields, 'invoice')

        assert summary.startswith('#### Invoice Analysis')
        assert '**Invoice A100** from Acme Corp' in summary
        assert 'Low-value transaction' in summary
        assert '1. Auto-approve payment processing' in summary

    def test_invoice_summary_high_value(self):
        summary = generate_summary("", {'Amount': '$25,000'}, 'invoice')

        assert 'High-value transaction detected' in summary
        assert 'Missing invoice number' in summary
        assert '3. Obtain management approval' in summary

    def test_contract_summary_risk_terms(self):
        text = "Early termination incurs a penalty."
        summary = generate_summary(text, {'Term': '2 years'}, 'contract')

        assert summary.startswith('#### Contract Analysis')
        assert 'Contains: termination clauses, penalty provisions' in summary
        assert 'Long-term commitment (2 years)' in summary
        assert '5. Set reminder for renewal/expiration' in summary

    def test_generic_summary(self):
        summary = generate_summary("First. Second. Third.", {'A': '1'}, 'memo')

        assert summary.startswith('First. Second.\n\n')
        assert '3 words analyzed' in summary
        assert 'Key fields extracted: 1' in summary


class TestKeywords:

    def test_invoice(self):
        assert extract_keywords(SAMPLE_INVOICE) == ['Acme', 'Corp', 'contact']

    def test_most_frequent_first(self):
        text = "Penalty clause. The penalty applies after notice. Penalty review pending."
        keywords = extract_keywords(text)

        assert keywords[0] == 'Penalty'
        assert keywords[1:] == ['applies', 'notice', 'review', 'pending']

    def test_contacts_removed(self):
        text = "Reach billing@vendor.example or https://vendor.example/portal today"
        assert extract_keywords(text) == ['Reach', 'today']

    def test_limit(self):
        text = "alpha bravo charlie delta echo foxtrot golf hotel india juliet kilo lima"
        assert len(extract_keywords(text)) == 10
        assert extract_keywords(text, limit=3) == ['alpha', 'bravo', 'charlie']

    def test_empty(self):
        assert extract_keywords('') == []
        assert extract_keywords('a an the of') == []
