import pytest

from serenite.models.admin import (
    AdminDocument,
    Address,
    address_from_payload,
    address_to_payload,
    admin_user_changes,
    admin_user_from_payload,
    admin_users_from_payload,
    build_address_line,
    format_file_size,
    member_from_payload,
    merge_documents,
)


def test_address_reads_both_conventions():
    camel = address_from_payload({"numeroRue": "12", "rue": "rue des Lilas", "codePostal": "69001", "ville": "Lyon"})
    snake = address_from_payload({"numero_rue": "12", "rue": "rue des Lilas", "code_postal": "69001", "ville": "Lyon"})
    assert camel == snake
    assert camel.line() == "12 rue des Lilas, 69001 Lyon"


def test_address_writes_camel_case():
    payload = address_to_payload(Address(numero_rue=" 3 ", rue="Grand Rue", code_postal="75001", ville="Paris"))
    assert payload == {
        "numeroRue": "3",
        "rue": "Grand Rue",
        "codePostal": "75001",
        "ville": "Paris",
        "complement": "",
    }


def test_address_line_placeholder():
    assert build_address_line(None) == "-"
    assert Address().line() == "-"
    assert Address(ville="Lyon", complement="Bât. B").line() == "Lyon, Bât. B"


def test_member_label_and_name_alias():
    assert member_from_payload({"id": 7, "name": "Les Amis", "initiales": "LA"}).label == "Les Amis (LA)"
    assert member_from_payload({"id": "m"}).label == "Membre"
    assert member_from_payload({"nom": "sans id"}) is None


# ---------------------------------------------------------------------------
# documents
# ---------------------------------------------------------------------------

ID_DOC = AdminDocument(id="d1", nom="cni.pdf", type="IDENTITE", size=10)
RIB_DOC = AdminDocument(id="d2", nom="rib.pdf", type="RIB", size=20)


def test_merge_replaces_by_id():
    merged = merge_documents([ID_DOC, RIB_DOC], AdminDocument(id="d2", nom="rib-2024.pdf"))
    assert [d.nom for d in merged] == ["cni.pdf", "rib-2024.pdf"]
    assert merged[1].type == "RIB"
    assert merged[1].size == 20


def test_merge_replaces_known_type_without_matching_id():
    merged = merge_documents([ID_DOC, RIB_DOC], AdminDocument(id="d9", nom="new.pdf", type="RIB"))
    assert len(merged) == 2
    assert merged[1].id == "d9"
    assert merged[1].nom == "new.pdf"


def test_merge_appends_unknown_document():
    other = AdminDocument(id="d3", nom="attestation.pdf", type="AUTRE")
    merged = merge_documents([ID_DOC], other)
    assert merged == [ID_DOC, other]


def test_merge_does_not_mutate_input():
    docs = [ID_DOC]
    merge_documents(docs, AdminDocument(id="d1", nom="x"))
    assert docs == [ID_DOC]


def test_document_label():
    assert ID_DOC.label == "Pièce d'identité"
    assert AdminDocument(id=None, type="AUTRE").label == "AUTRE"
    assert AdminDocument(id=None).label == "Document"


@pytest.mark.parametrize(
    "size,expected",
    [(None, "-"), (True, "-"), (512, "512 o"), (2048, "2.0 Ko"), (3 * 1024 * 1024, "3.0 Mo")],
)
def test_format_file_size(size, expected):
    assert format_file_size(size) == expected


# ---------------------------------------------------------------------------
# utilisateurs
# ---------------------------------------------------------------------------


def test_admin_user_defaults():
    user = admin_user_from_payload({"id": 5, "email": "a@example.com"})
    assert user.id == "5"
    assert user.effective_role == "ADHERENT"
    assert user.active is True
    assert user.validation_state == "unknown"
    assert user.display_name == "a@example.com"
    assert user.assigned_member_id == ""


def test_admin_user_normalizes_nested_payloads():
    user = admin_user_from_payload(
        {
            "id": "1",
            "firstName": "Jane",
            "lastName": "Doe",
            "isActive": False,
            "isValidated": True,
            "membres": [{"id": "m1", "nom": "Les Amis"}],
            "documents": [{"id": "d1", "name": "cni.pdf", "type": "IDENTITE", "fichierBase64": "QQ=="}],
            "adresse": {"numero_rue": "1", "rue": "Place Bellecour", "ville": "Lyon"},
        }
    )
    assert user.display_name == "Jane Doe"
    assert not user.active
    assert user.validation_state == "validated"
    assert user.assigned_member_id == "m1"
    assert user.documents[0].nom == "cni.pdf"
    assert user.documents[0].fichier_base64 == "QQ=="
    assert user.adresse.line() == "1 Place Bellecour, Lyon"


def test_merged_with_lets_server_win_only_on_returned_fields():
    user = admin_user_from_payload({"id": "1", "email": "a@example.com", "role": "ADHERENT", "isActive": True})
    merged = user.merged_with({"id": "1", "role": "ADMIN_MEMBRE"})
    assert merged.role == "ADMIN_MEMBRE"
    assert merged.email == "a@example.com"
    assert merged.active is True
    assert user.merged_with(None) is user


def test_list_adapter_skips_rows_without_id():
    users = admin_users_from_payload([{"id": "1"}, {"email": "ghost@example.com"}, "junk"])
    assert [u.id for u in users] == ["1"]


def test_list_adapter_skips_rows_that_fail_validation():
    users = admin_users_from_payload([{"id": "1", "isValidated": "bof"}, {"id": "2", "is_validated": True}])
    assert [u.id for u in users] == ["2"]
    assert users[0].validation_state == "validated"


def test_changes_ignore_id_and_null_fields():
    changes = admin_user_changes({"id": "9", "nom": "Durand", "telephone": None, "telephone_fixe": "04"})
    assert changes == {"nom": "Durand"}
    assert admin_user_changes("junk") == {}
