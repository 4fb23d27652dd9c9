from storage.app_storage import AppStorage


def test_get_returns_default_when_missing(app_storage):
    assert app_storage.get("saved_places") is None
    assert app_storage.get("saved_places", "[]") == "[]"


def test_set_overwrites_and_persists_across_instances(tmp_path):
    path = str(tmp_path / "nested" / "app.sqlite")
    first = AppStorage(path)
    first.set("saved_places", "[]")
    first.set("saved_places", '[{"name":"Paris","latitude":48.8,"longitude":2.3}]')

    second = AppStorage(path)

    assert second.get("saved_places") == '[{"name":"Paris","latitude":48.8,"longitude":2.3}]'


def test_delete_reports_whether_key_existed(app_storage):
    app_storage.set("k", "v")

    assert app_storage.delete("k") is True
    assert app_storage.delete("k") is False
    assert app_storage.get("k") is None
