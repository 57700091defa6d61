"""
Tests for qimport.assets.reconciler

Test Coverage:
- AssetReconciler.reconcile(): plan building, existing media, missing/ambiguous names, no side effects
- AssetReconciler.upload(): bounded pool, one upload per physical file, failures
"""
import pytest

from conftest import FakeMediaStore, image
from qimport.assets.reconciler import AssetReconciler
from qimport.errors import MissingAssetError


class TestReconcile:
    def test_all_required_matched(self):
        store = FakeMediaStore()
        plan = AssetReconciler(store).reconcile(["a.png", "photo1.png"], [image("a.png"), image("photo1.jpg")])

        assert plan.required == ("a.png", "photo1.png")
        assert plan.to_upload["photo1.png"].filename == "photo1.jpg"
        assert plan.outcomes["photo1.png"].tier == "base_name"
        assert store.uploaded == []

    def test_nothing_required(self):
        plan = AssetReconciler(FakeMediaStore()).reconcile([], [image("a.png")])
        assert plan.is_empty
        assert plan.to_upload == {}

    def test_existing_media_counts_as_resolved(self):
        store = FakeMediaStore(existing={"logo.png"})
        plan = AssetReconciler(store).reconcile(["logo.png"], [])
        assert plan.existing == {"logo.png": "logo.png"}

    def test_missing_names_are_reported(self):
        with pytest.raises(MissingAssetError) as exc:
            AssetReconciler(FakeMediaStore()).reconcile(["a.png", "b.png"], [image("a.png")])
        assert exc.value.missing == ["b.png"]
        assert "b.png" in str(exc.value)

    def test_ambiguous_names_are_reported(self):
        with pytest.raises(MissingAssetError) as exc:
            AssetReconciler(FakeMediaStore()).reconcile(
                ["photo1.gif"], [image("photo1.jpg"), image("photo1.png")]
            )
        assert exc.value.missing == []
        assert sorted(exc.value.ambiguous["photo1.gif"]) == ["photo1.jpg", "photo1.png"]

    def test_last_upload_with_same_name_wins(self):
        first = image("a.png")
        second = image("a.png")
        plan = AssetReconciler(FakeMediaStore()).reconcile(["a.png"], [first, second])
        assert plan.to_upload["a.png"] is second


class TestUpload:
    def test_uploads_and_maps_required_names(self):
        store = FakeMediaStore(existing={"logo.png"})
        reconciler = AssetReconciler(store, upload_workers=2)
        plan = reconciler.reconcile(
            ["a.png", "photo1.png", "logo.png"], [image("a.png"), image("photo1.jpg"), image("b.png")]
        )

        resolved = reconciler.upload(plan)

        assert resolved == {
            "a.png": "stored-a.png",
            "photo1.png": "stored-photo1.jpg",
            "logo.png": "logo.png",
        }
        assert sorted(store.uploaded) == ["a.png", "photo1.jpg"]

    def test_shared_file_uploaded_once(self):
        store = FakeMediaStore()
        reconciler = AssetReconciler(store)
        plan = reconciler.reconcile(["photo1.png", "photo1.gif"], [image("photo1.jpg")])

        resolved = reconciler.upload(plan)

        assert store.uploaded == ["photo1.jpg"]
        assert resolved["photo1.png"] == resolved["photo1.gif"] == "stored-photo1.jpg"

    def test_failed_upload_raises_missing_asset(self):
        store = FakeMediaStore(failing={"b.png"})
        reconciler = AssetReconciler(store)
        plan = reconciler.reconcile(["a.png", "b.png"], [image("a.png"), image("b.png")])

        with pytest.raises(MissingAssetError) as exc:
            reconciler.upload(plan)
        assert list(exc.value.failed) == ["b.png"]

    def test_retry_skips_already_stored_files(self):
        store = FakeMediaStore(failing={"b.png"})
        reconciler = AssetReconciler(store)
        plan = reconciler.reconcile(["a.png", "b.png"], [image("a.png"), image("b.png")])
        stored = {}

        with pytest.raises(MissingAssetError):
            reconciler.upload(plan, stored=stored)
        assert stored == {"a.png": "stored-a.png"}

        store.failing.clear()
        resolved = reconciler.upload(plan, stored=stored)

        assert resolved == {"a.png": "stored-a.png", "b.png": "stored-b.png"}
        assert store.uploaded == ["a.png", "b.png"]

    def test_empty_plan_uploads_nothing(self):
        store = FakeMediaStore()
        reconciler = AssetReconciler(store)
        assert reconciler.upload(reconciler.reconcile([], [])) == {}
        assert store.uploaded == []
