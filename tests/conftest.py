from typing import Any

import pytest

from recordguard import INTEGER, STRING, TEXT, FieldDefinition, Model


@pytest.fixture(scope="function")
def user_model() -> Model:
    return Model(
        "User",
        {
            "id": FieldDefinition(INTEGER, allow_null=False, auto_increment=True),
            "name": FieldDefinition(STRING, allow_null=False),
            "email": FieldDefinition(STRING(120), validate={"isEmail": True}),
            "bio": FieldDefinition(TEXT),
            "age": INTEGER,
        },
    )


@pytest.fixture(scope="function")
def valid_user(user_model: Model) -> Any:
    return user_model.build({"name": "Jane", "email": "jane.doe@mailbox.org", "age": 41})
