"""
Tests for the record validation orchestrator.
"""

import asyncio

import pytest

from recordguard import (
    INTEGER,
    STRING,
    Callback,
    ConfigurationError,
    FieldDefinition,
    Hooks,
    HookType,
    Model,
    PredicateRegistry,
    RecordValidator,
    Sync,
    UnknownPredicateError,
    ValidationError,
    ValidationInProgressError,
    ValidationOptions,
    default_registry,
    validate,
    validate_sync,
    validation_context,
)


def _errors(record, **options) -> list:
    with pytest.raises(ValidationError) as exc_info:
        validate_sync(record, **options)
    return exc_info.value.errors


class TestValidate:
    def test_valid_record_returns_record(self, valid_user):
        assert validate_sync(valid_user) is valid_user

    def test_no_validators_all_nullable(self):
        model = Model("Note", {"title": STRING, "count": INTEGER})
        record = model.build({"title": "x", "count": 1})
        assert validate_sync(record) is record

    def test_null_age(self):
        model = Model("Person", {"age": FieldDefinition(INTEGER, allow_null=False)})
        errors = _errors(model.build({"age": None}))
        assert [(e.field, e.validator_key, e.value) for e in errors] == [("age", "is_null", None)]

    def test_name_array(self):
        model = Model("Person", {"name": FieldDefinition(STRING)})
        errors = _errors(model.build({"name": ["a", "b"]}))
        assert [(e.field, e.validator_key) for e in errors] == [("name", "not_a_string")]

    def test_invalid_email(self, user_model):
        errors = _errors(user_model.build({"name": "Jane", "email": "not-an-email"}))
        assert [(e.field, e.validator_key) for e in errors] == [("email", "isEmail")]

    def test_auto_increment_skips_schema_check(self, user_model):
        record = user_model.build({"id": None, "name": "Jane"})
        assert validate_sync(record) is record

    def test_auto_generated_skips_schema_check(self):
        model = Model("Row", {"uid": FieldDefinition(STRING, allow_null=False, auto_generated=True)})
        record = model.build({})
        assert validate_sync(record) is record

    def test_null_value_skips_field_validators(self):
        calls = []
        model = Model(
            "Row",
            {"code": FieldDefinition(STRING, validate={"len": [2, 4], "spy": Sync(calls.append)})},
        )
        record = model.build({"code": None})
        assert validate_sync(record) is record
        assert calls == []

    def test_collects_all_failures(self):
        model = Model(
            "Signup",
            {
                "email": FieldDefinition(STRING, validate={"isEmail": True}),
                "site": FieldDefinition(STRING, validate={"isURL": True}),
                "zip": FieldDefinition(STRING, validate={"isNumeric": True}),
                "age": FieldDefinition(INTEGER, validate={"min": 18}),
            },
        )
        record = model.build({"email": "nope", "site": "not a url", "zip": "abc", "age": 12})
        errors = _errors(record)
        assert len(errors) == 4
        assert {e.field for e in errors} == {"email", "site", "zip", "age"}

    def test_multiple_failures_on_one_field(self):
        model = Model(
            "Row",
            {"code": FieldDefinition(STRING, validate={"len": [5, 10], "isNumeric": True, "isLowercase": True})},
        )
        errors = _errors(model.build({"code": "AB"}))
        assert sorted(e.validator_key for e in errors) == ["isLowercase", "isNumeric", "len"]

    def test_structural_and_predicate_failures_together(self, user_model):
        record = user_model.build({"name": None, "email": "nope", "bio": {"a": 1}})
        errors = _errors(record)
        assert sorted((e.field, e.validator_key) for e in errors) == [
            ("bio", "not_a_string"),
            ("email", "isEmail"),
            ("name", "is_null"),
        ]

    def test_zero_bound_in_args_member(self):
        model = Model("P", {"n": FieldDefinition(INTEGER, validate={"min": {"args": 0, "msg": "non-negative"}})})
        record = model.build({"n": 5})
        assert validate_sync(record) is record
        errors = _errors(model.build({"n": -1}))
        assert [(e.field, e.message, e.validator_args) for e in errors] == [("n", "non-negative", (0,))]

    def test_custom_message(self):
        model = Model(
            "Row",
            {"code": FieldDefinition(STRING, validate={"isNumeric": {"msg": "digits only"}})},
        )
        errors = _errors(model.build({"code": "AB"}))
        assert errors[0].message == "digits only"

    def test_report_on_exception(self, user_model):
        with pytest.raises(ValidationError) as exc_info:
            validate_sync(user_model.build({"name": None}))
        assert exc_info.value.get("name")[0].validator_key == "is_null"

    @pytest.mark.asyncio
    async def test_record_validate_method(self, valid_user):
        assert await valid_user.validate() is valid_user

    def test_record_validate_sync_method(self, user_model):
        with pytest.raises(ValidationError):
            user_model.build({}).validate_sync()


class TestCustomValidators:
    def test_record_level_raise_keyed_by_name(self):
        def name_or_email(record):
            if not record.get("name") and not record.get("email"):
                raise ValueError("Need a name or an email")

        model = Model("Contact", {"name": STRING, "email": STRING}, validate={"name_or_email": name_or_email})
        errors = _errors(model.build({}))
        assert len(errors) == 1
        assert errors[0].field == "name_or_email"
        assert errors[0].message == "Need a name or an email"

    def test_record_level_callback(self):
        def check(record, done):
            done("age mismatch" if record.get("age") < 0 else None)

        model = Model("P", {"age": INTEGER}, validate={"age_check": Callback(check)})
        errors = _errors(model.build({"age": -1}))
        assert [(e.field, e.message) for e in errors] == [("age_check", "age mismatch")]
        assert validate_sync(model.build({"age": 3}))

    def test_field_callback_error(self):
        def is_even(value, done):
            done(ValueError("must be even") if value % 2 else None)

        model = Model("P", {"count": FieldDefinition(INTEGER, validate={"isEven": Callback(is_even)})})
        errors = _errors(model.build({"count": 3}))
        assert len(errors) == 1
        item = errors[0]
        assert item.field == "count"
        assert item.validator_key == "isEven"
        assert item.message == "must be even"
        assert isinstance(item.original, ValueError)

    def test_field_plain_function(self):
        def positive(value):
            if value <= 0:
                raise ValueError("must be positive")

        model = Model("P", {"n": FieldDefinition(INTEGER, validate={"positive": positive})})
        errors = _errors(model.build({"n": -2}))
        assert [(e.field, e.validator_key) for e in errors] == [("n", "positive")]

    def test_slow_validator_does_not_block_siblings(self):
        order = []

        async def slow(record):
            await asyncio.sleep(0.02)
            order.append("slow")
            raise ValueError("slow failed")

        def fast(record):
            order.append("fast")
            raise ValueError("fast failed")

        model = Model("P", {"n": INTEGER}, validate={"slow": slow, "fast": Sync(fast)})
        errors = _errors(model.build({"n": 1}))
        assert order == ["fast", "slow"]
        assert [e.field for e in errors] == ["fast", "slow"]

    def test_invalid_record_validator_rejected(self):
        model = Model("P", {"n": INTEGER}, validate={"bad": 42})
        with pytest.raises(TypeError):
            RecordValidator(model.build({}))

    def test_coroutine_callback_settles(self):
        async def check(value, done):
            await asyncio.sleep(0)
            done(ValueError("must be even") if value % 2 else None)

        model = Model("P", {"n": FieldDefinition(INTEGER, validate={"isEven": Callback(check)})})
        record = model.build({"n": 2})
        assert validate_sync(record) is record

        async def run_odd():
            return await asyncio.wait_for(validate(model.build({"n": 3})), timeout=1)

        with pytest.raises(ValidationError) as exc_info:
            asyncio.run(run_odd())
        assert [(e.field, e.message) for e in exc_info.value.errors] == [("n", "must be even")]


class TestSkip:
    def _model(self):
        return Model(
            "P",
            {
                "name": FieldDefinition(STRING, allow_null=False),
                "email": FieldDefinition(STRING, validate={"isEmail": True}),
            },
            validate={"always_fails": Sync(lambda record: 1 / 0)},
        )

    def test_skip_fields_and_validators(self):
        record = self._model().build({"email": "nope"})
        assert validate_sync(record, skip=["name", "email", "always_fails"]) is record

    def test_skip_one_field(self):
        errors = _errors(self._model().build({"email": "nope"}), skip=["name"])
        assert sorted(e.field for e in errors) == ["always_fails", "email"]

    def test_fields_is_inverse_skip(self):
        errors = _errors(self._model().build({"email": "nope"}), fields=["email"])
        assert sorted(e.field for e in errors) == ["always_fails", "email"]

    def test_explicit_skip_wins_over_fields(self):
        errors = _errors(self._model().build({"email": "nope"}), fields=["email"], skip=["always_fails"])
        assert sorted(e.field for e in errors) == ["email", "name"]

    def test_skipped_field_unknown_predicate_allowed(self):
        model = Model("P", {"x": FieldDefinition(STRING, validate={"isBogus": True})})
        record = model.build({"x": "y"})
        assert validate_sync(record, skip=["x"]) is record


class TestConfiguration:
    def test_unknown_predicate_is_fatal(self):
        model = Model("P", {"x": FieldDefinition(STRING, validate={"isBogus": True})})
        with pytest.raises(UnknownPredicateError):
            validate_sync(model.build({"x": "y"}))

    def test_unknown_predicate_fails_before_running(self):
        calls = []
        model = Model(
            "P",
            {"x": FieldDefinition(STRING, validate={"isBogus": True})},
            validate={"spy": Sync(calls.append)},
        )
        with pytest.raises(UnknownPredicateError):
            RecordValidator(model.build({"x": "y"}))
        assert calls == []

    def test_custom_registry(self):
        registry = default_registry.copy()
        registry.extend("isEven", lambda text, *_: int(text) % 2 == 0)
        model = Model("P", {"n": FieldDefinition(INTEGER, validate={"isEven": True})})
        with pytest.raises(ValidationError):
            asyncio.run(RecordValidator(model.build({"n": 3}), registry=registry).run())

    def test_validation_context_registry(self):
        registry = PredicateRegistry({"isAnything": lambda text, *_: True})
        model = Model("P", {"n": FieldDefinition(STRING, validate={"isAnything": True})})
        record = model.build({"n": "x"})
        with validation_context(registry=registry):
            assert validate_sync(record) is record
        with pytest.raises(UnknownPredicateError):
            validate_sync(record)

    def test_options_validated(self, valid_user):
        from pydantic import ValidationError as OptionsError

        with pytest.raises(OptionsError):
            RecordValidator(valid_user, {"hooks": "sometimes"})

    def test_options_resolved(self, user_model):
        validator = RecordValidator(user_model.build({}), ValidationOptions(fields={"name"}))
        assert validator.options.skip == frozenset({"id", "email", "bio", "age"})
        assert validator.options.hooks is True

    def test_immutable_field(self):
        model = Model("P", {"ssn": FieldDefinition(STRING, validate={"isImmutable": True})})
        record = model.build({"ssn": "123"}, is_new_record=False)
        assert validate_sync(record) is record
        record.set("ssn", "456")
        errors = _errors(record)
        assert [(e.field, e.validator_key, e.validator_args) for e in errors] == [
            ("ssn", "isImmutable", (True, "ssn"))
        ]

    def test_zero_parameter_record_validator_rejected(self):
        calls = []
        model = Model(
            "P", {"n": INTEGER}, validate={"always_ok": lambda: calls.append("ran")}
        )
        with pytest.raises(ConfigurationError, match="always_ok"):
            RecordValidator(model.build({"n": 1}))
        with pytest.raises(ConfigurationError):
            validate_sync(model.build({"n": 1}))
        assert calls == []

    def test_one_parameter_field_callback_rejected(self):
        model = Model("P", {"n": FieldDefinition(INTEGER, validate={"check": Callback(lambda value: None)})})
        with pytest.raises(ConfigurationError, match="check"):
            RecordValidator(model.build({"n": 1}))

    def test_skipped_record_validator_shape_not_checked(self):
        model = Model("P", {"n": INTEGER}, validate={"always_ok": lambda: None})
        record = model.build({"n": 1})
        assert validate_sync(record, skip=["always_ok"]) is record


class TestInProgress:
    @pytest.mark.asyncio
    async def test_concurrent_run_is_fatal(self):
        gate = asyncio.Event()

        async def wait_for_gate(record):
            await gate.wait()

        model = Model("P", {"n": INTEGER}, validate={"gated": wait_for_gate})
        validator = RecordValidator(model.build({"n": 1}), {"hooks": False})
        first = asyncio.create_task(validator.run())
        await asyncio.sleep(0)

        with pytest.raises(ValidationInProgressError):
            await validator.run()

        gate.set()
        assert (await first).get("n") == 1

    @pytest.mark.asyncio
    async def test_reuse_after_completion_is_fatal(self, valid_user):
        validator = RecordValidator(valid_user)
        await validator.run()
        with pytest.raises(ValidationInProgressError):
            await validator.run()

    @pytest.mark.asyncio
    async def test_reuse_bypasses_hooks(self):
        calls = []
        hooks = Hooks()
        hooks.add(HookType.BEFORE_VALIDATE, lambda record, options: calls.append("before"))
        hooks.add(
            HookType.VALIDATION_FAILED,
            lambda record, options, error: calls.append("failed") or RuntimeError("replaced"),
        )
        model = Model("P", {"n": INTEGER}, hooks=hooks)
        validator = RecordValidator(model.build({"n": 1}))
        await validator.run()
        with pytest.raises(ValidationInProgressError):
            await validator.run()
        assert calls == ["before"]

    @pytest.mark.asyncio
    async def test_fresh_validator_per_run(self, valid_user):
        assert await validate(valid_user) is valid_user
        assert await validate(valid_user) is valid_user


class TestHooks:
    def _model(self, hooks: Hooks, **fields):
        return Model("P", fields or {"name": FieldDefinition(STRING, allow_null=False)}, hooks=hooks)

    def test_success_sequence(self):
        calls = []
        hooks = Hooks()
        hooks.add(HookType.BEFORE_VALIDATE, lambda record, options: calls.append("before"))
        hooks.add(HookType.AFTER_VALIDATE, lambda record, options: calls.append("after"))
        hooks.add(HookType.VALIDATION_FAILED, lambda record, options, error: calls.append("failed"))
        record = self._model(hooks).build({"name": "x"})
        assert validate_sync(record) is record
        assert calls == ["before", "after"]

    def test_failure_sequence(self):
        calls = []
        hooks = Hooks()
        hooks.add("beforeValidate", lambda record, options: calls.append("before"))
        hooks.add("afterValidate", lambda record, options: calls.append("after"))
        hooks.add("validationFailed", lambda record, options, error: calls.append(type(error).__name__))
        with pytest.raises(ValidationError):
            validate_sync(self._model(hooks).build({}))
        assert calls == ["before", "ValidationError"]

    def test_before_hook_can_fix_record(self):
        hooks = Hooks()

        async def default_name(record, options):
            record.set("name", "anonymous")

        hooks.add(HookType.BEFORE_VALIDATE, default_name)
        record = self._model(hooks).build({})
        assert validate_sync(record).get("name") == "anonymous"

    def test_before_hook_failure_aborts(self):
        calls = []
        hooks = Hooks()

        def refuse(record, options):
            raise PermissionError("read only")

        hooks.add(HookType.BEFORE_VALIDATE, refuse)
        hooks.add(HookType.VALIDATION_FAILED, lambda *args: calls.append("failed"))
        model = Model("P", {"n": INTEGER}, validate={"spy": Sync(calls.append)}, hooks=hooks)
        with pytest.raises(PermissionError):
            validate_sync(model.build({}))
        assert calls == []

    def test_validation_failed_substitutes_error(self):
        class MyError(Exception):
            pass

        hooks = Hooks()
        hooks.add(HookType.VALIDATION_FAILED, lambda record, options, error: MyError(len(error.errors)))
        with pytest.raises(MyError) as exc_info:
            validate_sync(self._model(hooks).build({}))
        assert exc_info.value.args == (1,)
        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_validation_failed_passthrough(self):
        hooks = Hooks()
        hooks.add(HookType.VALIDATION_FAILED, lambda record, options, error: None)
        with pytest.raises(ValidationError):
            validate_sync(self._model(hooks).build({}))

    def test_hooks_disabled(self):
        calls = []
        hooks = Hooks()
        hooks.add(HookType.BEFORE_VALIDATE, lambda record, options: calls.append("before"))
        record = self._model(hooks).build({"name": "x"})
        validate_sync(record, hooks=False)
        with validation_context(hooks=False):
            validate_sync(record)
        assert calls == []

    def test_hooks_receive_options(self):
        seen = []
        hooks = Hooks()
        hooks.add(HookType.BEFORE_VALIDATE, lambda record, options: seen.append(options))
        record = self._model(hooks).build({"name": "x"})
        validate_sync(record, skip=["name"], transaction="tx-1")
        assert seen[0].skip == frozenset({"name"})
        assert seen[0].transaction == "tx-1"
