"""Tests for the structural store transformations."""

import pytest

from struct_canvas.core.exceptions import NodeReferenceError, StoreError, UniquenessViolation
from struct_canvas.core.intents import (
    AddField,
    AddStruct,
    DeleteStruct,
    RemoveField,
    RenameField,
    RenameMethod,
    RenameStruct,
    RetypeField,
    RetypeMethodReturn,
)
from struct_canvas.core.models import (
    LOADING_MODEL,
    File,
    Package,
    Struct,
    StructuralModel,
    struct_ref,
)
from struct_canvas.core.store import (
    ClearModel,
    ModelStore,
    NodePath,
    ReplaceFile,
    ReplaceModel,
    ReplaceRelations,
    apply,
    apply_all,
    find_struct,
    merge_snapshot,
    resolve,
    validate_model,
)


def _struct(model, package, file, name):
    return find_struct(model, struct_ref(package, file, name))


class TestResolution:
    """NodeRef → NodePath resolution."""

    def test_resolve_struct(self, model, conn_ref):
        assert resolve(model, conn_ref) == NodePath(0, 0, 1)

    def test_missing_package(self, model):
        with pytest.raises(NodeReferenceError):
            resolve(model, struct_ref("nope", "main.go", "Server"))

    def test_missing_file(self, model):
        with pytest.raises(NodeReferenceError):
            resolve(model, struct_ref("main", "nope.go", "Server"))

    def test_missing_struct(self, model):
        with pytest.raises(NodeReferenceError):
            resolve(model, struct_ref("main", "main.go", "Nope"))

    def test_ambiguous_name_is_rejected(self):
        model = StructuralModel(
            packages=(Package(name="p", files=(File(name="f"), File(name="f"))),)
        )
        with pytest.raises(UniquenessViolation):
            resolve(model, struct_ref("p", "f", "S"))

    def test_find_struct_returns_none_when_absent(self, model):
        assert find_struct(model, struct_ref("main", "main.go", "Nope")) is None


_GHOST = struct_ref("ghost", "main.go", "Server")


class TestAbsentPaths:
    @pytest.mark.parametrize(
        "intent",
        [
            DeleteStruct(_GHOST),
            RenameStruct(_GHOST, new_name="X"),
            AddField(_GHOST),
            RemoveField(_GHOST, key=0),
            RenameField(_GHOST, key=0, new_name="x"),
            RetypeField(_GHOST, key=0, new_type="x"),
            AddStruct(_GHOST),
            RenameMethod(_GHOST, method_index=0, new_name="x"),
            RetypeMethodReturn(_GHOST, method_index=0, type_index=0, new_type="x"),
        ],
        ids=lambda intent: type(intent).__name__,
    )
    def test_every_intent_fails_unchanged(self, model, intent):
        result = apply(model, intent)

        assert isinstance(result.error, NodeReferenceError)
        assert result.model is model


class TestStructuralSharing:
    """Untouched sub-trees are reused by reference."""

    def test_add_field_shares_siblings(self, model, server_ref):
        result = apply(model, AddField(server_ref))

        assert result.ok
        new = result.model
        assert new is not model
        # Other package untouched
        assert new.packages[1] is model.packages[1]
        # Sibling file untouched
        assert new.packages[0].files[1] is model.packages[0].files[1]
        # Sibling struct untouched
        assert new.packages[0].files[0].structs[1] is model.packages[0].files[0].structs[1]
        # Edges and functions untouched
        assert new.edges is model.edges
        assert new.global_functions is model.global_functions

    def test_input_model_is_not_mutated(self, model, server_ref):
        before = model.model_dump()
        apply(model, DeleteStruct(server_ref))
        apply(model, RenameStruct(server_ref, new_name="Srv"))
        assert model.model_dump() == before

    def test_noop_returns_same_model(self, model, server_ref):
        result = apply(model, RenameField(server_ref, key=0, new_name="addr"))
        assert result.ok
        assert result.model is model


class TestStructEdits:
    def test_delete_struct(self, model, server_ref):
        result = apply(model, DeleteStruct(server_ref))

        assert result.ok
        assert _struct(result.model, "main", "main.go", "Server") is None
        assert [s.name for s in result.model.packages[0].files[0].structs] == ["Conn"]

    def test_delete_absent_struct_is_noop(self, model):
        result = apply(model, DeleteStruct(struct_ref("main", "main.go", "Ghost")))

        assert result.ok
        assert result.model is model

    def test_delete_in_unknown_file_fails(self, model):
        result = apply(model, DeleteStruct(struct_ref("main", "ghost.go", "Server")))

        assert not result.ok
        assert isinstance(result.error, NodeReferenceError)
        assert result.model is model

    def test_rename_struct_keeps_edges(self, model, server_ref):
        result = apply(model, RenameStruct(server_ref, new_name="Srv"))

        assert result.ok
        assert _struct(result.model, "main", "main.go", "Srv") is not None
        # Edges are not rewritten by a rename
        assert result.model.edges == model.edges
        assert result.model.edges[0].from_.struct_name == "Server"

    def test_rename_struct_clash_is_rejected(self, model, server_ref):
        result = apply(model, RenameStruct(server_ref, new_name="Conn"))

        assert isinstance(result.error, UniquenessViolation)
        assert result.model is model

    def test_add_struct_appends_placeholder(self):
        model = StructuralModel(
            packages=(Package(name="p", files=(File(name="f", structs=(Struct(name="S"),)),)),)
        )
        result = apply(model, AddStruct(struct_ref("p", "f")))

        assert result.ok
        structs = result.model.packages[0].files[0].structs
        assert [s.name for s in structs] == ["S", "[name]"]
        assert structs[1].fields == ()
        assert structs[1].methods == ()

    def test_add_struct_twice_keeps_names_unique(self, model):
        ref = struct_ref("util", "util.go")
        result = apply_all(model, [AddStruct(ref), AddStruct(ref), AddStruct(ref)])

        assert result.ok
        names = [s.name for s in result.model.packages[1].files[0].structs]
        assert names == ["Helper", "[name]", "[name]2", "[name]3"]

    def test_add_struct_unknown_file(self, model):
        result = apply(model, AddStruct(struct_ref("util", "nope.go")))
        assert isinstance(result.error, NodeReferenceError)


class TestFieldEdits:
    def test_add_field_appends_placeholder(self, model, server_ref):
        result = apply(model, AddField(server_ref))

        fields = _struct(result.model, "main", "main.go", "Server").fields
        assert len(fields) == 3
        assert fields[-1].name == "[name]"
        assert fields[-1].type.literal == "[type]"

    def test_add_then_remove_field_restores_fields(self, model, server_ref):
        added = apply(model, AddField(server_ref)).model
        removed = apply(added, RemoveField(server_ref, key=2)).model

        assert _struct(removed, "main", "main.go", "Server").fields == _struct(
            model, "main", "main.go", "Server"
        ).fields

    def test_remove_field_out_of_range(self, model, server_ref):
        result = apply(model, RemoveField(server_ref, key=5))

        assert isinstance(result.error, NodeReferenceError)
        assert result.model is model

    def test_rename_field(self, model, server_ref):
        result = apply(model, RenameField(server_ref, key=1, new_name="peer"))

        field = _struct(result.model, "main", "main.go", "Server").fields[1]
        assert field.name == "peer"
        assert field.type.literal == "*Conn"

    def test_retype_field_keeps_struct_refs(self, model, server_ref):
        result = apply(model, RetypeField(server_ref, key=1, new_type="Conn"))

        field = _struct(result.model, "main", "main.go", "Server").fields[1]
        assert field.type.literal == "Conn"
        assert field.type.structs == ("Conn",)

    def test_duplicate_field_names_allowed(self, model, server_ref):
        result = apply(model, RenameField(server_ref, key=1, new_name="addr"))
        assert result.ok


class TestMethodEdits:
    def test_rename_method(self, model, server_ref):
        result = apply(model, RenameMethod(server_ref, method_index=0, new_name="Run"))

        assert _struct(result.model, "main", "main.go", "Server").methods[0].name == "Run"

    def test_retype_method_return(self, model, server_ref):
        result = apply(
            model, RetypeMethodReturn(server_ref, method_index=0, type_index=0, new_type="bool")
        )

        method = _struct(result.model, "main", "main.go", "Server").methods[0]
        assert method.return_type[0].literal == "bool"

    def test_method_index_out_of_range(self, model, conn_ref):
        result = apply(model, RenameMethod(conn_ref, method_index=0, new_name="X"))
        assert isinstance(result.error, NodeReferenceError)

    def test_return_type_index_out_of_range(self, model, server_ref):
        result = apply(
            model, RetypeMethodReturn(server_ref, method_index=0, type_index=3, new_type="x")
        )
        assert isinstance(result.error, NodeReferenceError)


class TestSnapshotTransformations:
    def test_replace_model(self, model):
        result = apply(LOADING_MODEL, ReplaceModel(model))
        assert result.model is model

    def test_replace_model_rejects_duplicates(self):
        bad = StructuralModel(packages=(Package(name="p"), Package(name="p")))
        result = apply(LOADING_MODEL, ReplaceModel(bad))

        assert isinstance(result.error, UniquenessViolation)
        assert result.model is LOADING_MODEL

    def test_replace_file_shares_other_files(self, model):
        ref = struct_ref("main", "config.go")
        result = apply(model, ReplaceFile(ref, (Struct(name="Config"), Struct(name="Opts"))))

        assert result.ok
        assert [s.name for s in result.model.packages[0].files[1].structs] == ["Config", "Opts"]
        assert result.model.packages[0].files[0] is model.packages[0].files[0]

    def test_replace_relations_keeps_missing_parts(self, model):
        result = apply(model, ReplaceRelations(edges=()))

        assert result.model.edges == ()
        assert result.model.global_functions is model.global_functions

    def test_replace_relations_nothing_to_do(self, model):
        assert apply(model, ReplaceRelations()).model is model

    def test_clear_model(self, model):
        result = apply(model, ClearModel())
        assert result.model is LOADING_MODEL
        assert result.model.is_loading

    def test_unknown_transformation(self, model):
        result = apply(model, object())

        assert type(result.error) is StoreError
        assert result.model is model


class TestApplyAll:
    def test_all_or_nothing(self, model, server_ref):
        result = apply_all(
            model,
            [AddField(server_ref), RemoveField(server_ref, key=9)],
        )

        assert not result.ok
        assert result.model is model


class TestMergeSnapshot:
    def test_full_snapshot_replaces(self, model):
        snapshot = StructuralModel(packages=(Package(name="other"),))
        result = merge_snapshot(model, snapshot)

        assert result.model is snapshot

    def test_scoped_snapshot_replaces_carried_file_only(self, model):
        snapshot = StructuralModel.model_validate(
            {
                "fileChanged": True,
                "packages": [
                    {
                        "name": "util",
                        "files": [
                            {"name": "util.go", "structs": [{"name": "Helper"}, {"name": "Pool"}]}
                        ],
                    }
                ],
            }
        )
        result = merge_snapshot(model, snapshot, scoped=True)

        assert result.ok
        assert [s.name for s in result.model.packages[1].files[0].structs] == ["Helper", "Pool"]
        assert result.model.packages[0] is model.packages[0]
        # Relations were not part of the message
        assert result.model.edges is model.edges
        assert result.model.global_functions is model.global_functions

    def test_scoped_snapshot_with_relations(self, model):
        snapshot = StructuralModel.model_validate(
            {"packages": [], "edges": [], "globalFunctions": None}
        )
        result = merge_snapshot(model, snapshot, scoped=True)

        assert result.model.edges == ()
        # Null slice is treated as absent
        assert result.model.global_functions is model.global_functions

    def test_scoped_snapshot_unknown_file_falls_back_to_full(self, model):
        snapshot = StructuralModel.model_validate(
            {"packages": [{"name": "new", "files": [{"name": "new.go"}]}]}
        )
        result = merge_snapshot(model, snapshot, scoped=True)

        assert result.model is snapshot


class TestValidateModel:
    def test_valid_model(self, model):
        validate_model(model)

    def test_duplicate_struct(self):
        model = StructuralModel(
            packages=(
                Package(
                    name="p",
                    files=(File(name="f", structs=(Struct(name="S"), Struct(name="S"))),),
                ),
            )
        )
        with pytest.raises(UniquenessViolation):
            validate_model(model)


class TestModelStore:
    def test_listeners_notified_on_change_only(self, model, server_ref):
        store = ModelStore(model)
        seen = []
        store.subscribe(seen.append)

        store.apply(AddField(server_ref))
        store.apply(DeleteStruct(struct_ref("main", "main.go", "Ghost")))
        store.apply(RemoveField(server_ref, key=99))

        assert len(seen) == 1
        assert seen[0] is store.model

    def test_unsubscribe(self, model, server_ref):
        store = ModelStore(model)
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()

        store.apply(AddField(server_ref))
        assert seen == []

    def test_starts_loading_and_resets(self, model):
        store = ModelStore()
        assert store.model.is_loading

        store.apply(ReplaceModel(model))
        assert not store.model.is_loading

        store.reset()
        assert store.model is LOADING_MODEL
