import json

import pytest

from equipment_search.corpus.loader import CorpusLoader
from equipment_search.corpus.models import CorpusDocument
from equipment_search.domain.models import DomainCategory
from equipment_search.errors import IndexBuildError


@pytest.fixture
def loader():
    return CorpusLoader()


class TestCorpusDocument:
    def test_loose_record_keys(self):
        doc = CorpusDocument.model_validate(
            {"id": 7, "equipmentId": "EQ-7", "rawText": "Vassouras de Nylon", "domain": "cleaning_support"}
        )
        assert doc.id == "7"
        assert doc.raw_text == "Vassouras de Nylon"
        assert doc.text == "vassoura de nylon"
        assert doc.group_id == "EQ-7"
        assert doc.identity == "EQ-7"
        assert doc.domain_label == DomainCategory.SUPPORT

    def test_text_only_record(self):
        doc = CorpusDocument.model_validate({"id": "x", "text": "Balde 20 Litros"})
        assert doc.raw_text == "Balde 20 Litros"
        assert doc.text == "balde 20 litro"
        assert doc.identity == "x"

    def test_identity_prefers_equipment_id(self):
        doc = CorpusDocument(id="1", equipmentId="EQ-1", groupId="G-1", rawText="Mop")
        assert doc.identity == "EQ-1"

    def test_identity_falls_back_to_group(self):
        doc = CorpusDocument(id="1", groupId="G-1", rawText="Mop")
        assert doc.identity == "G-1"

    def test_frozen(self):
        doc = CorpusDocument(id="1", rawText="Mop")
        with pytest.raises(Exception):
            doc.id = "2"


class TestFromRecords:
    def test_builds_documents(self, loader, corpus_records):
        docs = loader.from_records(corpus_records)
        assert len(docs) == len(corpus_records)
        assert docs[0].identity == docs[1].identity == "EQ-001"

    def test_invalid_record_names_position(self, loader):
        records = [{"id": "1", "rawText": "Mop"}, {"id": "2"}]
        with pytest.raises(IndexBuildError, match="position 1"):
            loader.from_records(records)

    def test_empty_corpus(self, loader):
        with pytest.raises(IndexBuildError):
            loader.from_records([])


class TestFiles:
    def test_from_csv_drops_rows_without_text(self, loader, tmp_path):
        path = tmp_path / "corpus.csv"
        path.write_text(
            "id,equipmentId,rawText\n1,EQ-1,Mop plano\n2,EQ-2,\n3,,Balde 12L\n",
            encoding="utf-8",
        )
        docs = loader.from_csv(path)

        assert [d.id for d in docs] == ["1", "3"]
        assert docs[1].identity == "3"

    def test_from_csv_missing_file(self, loader, tmp_path):
        with pytest.raises(FileNotFoundError):
            loader.from_csv(tmp_path / "missing.csv")

    def test_from_csv_missing_columns(self, loader, tmp_path):
        path = tmp_path / "corpus.csv"
        path.write_text("id,name\n1,Mop\n", encoding="utf-8")
        with pytest.raises(IndexBuildError):
            loader.from_csv(path)

    def test_from_json(self, loader, tmp_path):
        path = tmp_path / "corpus.json"
        path.write_text(
            json.dumps(
                [
                    {"id": 1, "equipmentId": "EQ-1", "rawText": "Aspirador de pó"},
                    {"id": 2, "rawText": "Escada 5 degraus", "domain": "peripheral"},
                ]
            ),
            encoding="utf-8",
        )
        docs = loader.from_json(path)

        assert [d.id for d in docs] == ["1", "2"]
        assert docs[1].identity == "2"
        assert docs[1].domain_label == DomainCategory.PERIPHERAL
