"""Workspace 路由集成测试（TestClient + 临时工作区）。"""


def _tree_paths(nodes):
    """展开目录树为相对路径集合。"""
    paths = set()
    for node in nodes:
        paths.add(node["path"])
        paths |= _tree_paths(node.get("children") or [])
    return paths


class TestMutationRoutes:
    """测试变更接口的请求/响应格式。"""

    def test_delete_then_tree(self, api_client, configured_workspace):
        """删除后目录树中不再出现。"""
        (configured_workspace / "a.txt").write_text("a")

        res = api_client.request("DELETE", "/api/workspace/file", json={"path": "a.txt"})

        assert res.status_code == 200
        assert res.json() == {"ok": True, "path": "a.txt"}
        tree = api_client.get("/api/workspace/tree").json()
        assert tree["exists"] is True
        assert "a.txt" not in _tree_paths(tree["tree"])

    def test_rename_then_tree(self, api_client, configured_workspace):
        """重命名后旧名消失、新名出现且内容一致。"""
        (configured_workspace / "a.txt").write_text("content")

        res = api_client.post("/api/workspace/rename", json={"path": "a.txt", "newName": "b.txt"})

        assert res.status_code == 200
        assert res.json() == {"ok": True, "oldPath": "a.txt", "newPath": "b.txt"}
        paths = _tree_paths(api_client.get("/api/workspace/tree").json()["tree"])
        assert "a.txt" not in paths
        assert "b.txt" in paths
        file = api_client.get("/api/workspace/file", params={"path": "b.txt"}).json()
        assert file["content"] == "content"

    def test_move_then_tree(self, api_client, configured_workspace):
        """移动后源目录无、目标目录有。"""
        (configured_workspace / "src").mkdir()
        (configured_workspace / "dst").mkdir()
        (configured_workspace / "src" / "n.md").write_text("n")

        res = api_client.post("/api/workspace/move", json={"sourcePath": "src/n.md", "destinationDir": "dst"})

        assert res.status_code == 200
        assert res.json() == {"ok": True, "oldPath": "src/n.md", "newPath": "dst/n.md"}
        paths = _tree_paths(api_client.get("/api/workspace/tree").json()["tree"])
        assert "src/n.md" not in paths
        assert "dst/n.md" in paths

    def test_copy_and_mkdir(self, api_client, configured_workspace):
        """copy 自动命名；mkdir 第二次 409。"""
        (configured_workspace / "report.pdf").write_bytes(b"%PDF")

        res = api_client.post("/api/workspace/copy", json={"path": "report.pdf"})
        assert res.status_code == 200
        assert res.json() == {"ok": True, "sourcePath": "report.pdf", "newPath": "report copy.pdf"}

        assert api_client.post("/api/workspace/mkdir", json={"path": "a/b/c"}).status_code == 200
        res = api_client.post("/api/workspace/mkdir", json={"path": "a/b/c"})
        assert res.status_code == 409
        assert res.json()["detail"]["reason"] == "Conflict"


class TestFailureResponses:
    """测试失败响应的 reason 与状态码。"""

    def test_system_file_delete_is_403(self, api_client, configured_workspace):
        """删除系统文件返回 403 SystemFileProtected。"""
        (configured_workspace / "workspace.duckdb").write_bytes(b"db")

        res = api_client.request("DELETE", "/api/workspace/file", json={"path": "workspace.duckdb"})

        assert res.status_code == 403
        assert res.json()["detail"] == {"error": "Cannot delete system file", "reason": "SystemFileProtected"}

    def test_system_file_behind_dotdot_is_403(self, api_client, configured_workspace):
        """workspace.duckdb/x/.. 折叠后仍是系统文件，返回 403。"""
        (configured_workspace / "workspace.duckdb").write_bytes(b"db")

        res = api_client.request("DELETE", "/api/workspace/file", json={"path": "workspace.duckdb/x/.."})

        assert res.status_code == 403
        assert res.json()["detail"]["reason"] == "SystemFileProtected"
        assert (configured_workspace / "workspace.duckdb").exists()

    def test_error_schema_is_documented(self, api_client):
        """OpenAPI 中变更接口声明了统一的错误响应模型。"""
        schema = api_client.get("/openapi.json").json()

        delete_responses = schema["paths"]["/api/workspace/file"]["delete"]["responses"]
        assert delete_responses["403"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
        assert set(schema["components"]["schemas"]["ErrorDetail"]["required"]) == {"error", "reason"}

    def test_traversal_does_not_leak_root(self, api_client, configured_workspace):
        """越界请求不泄露工作区绝对路径。"""
        res = api_client.request("DELETE", "/api/workspace/file", json={"path": "../../etc/passwd"})

        assert res.status_code == 404
        assert res.json()["detail"]["reason"] == "PathTraversalRejected"
        assert str(configured_workspace) not in res.text

    def test_rename_conflict_is_409(self, api_client, configured_workspace):
        """重命名到已存在的名字返回 409。"""
        (configured_workspace / "a.txt").write_text("a")
        (configured_workspace / "b.txt").write_text("b")

        res = api_client.post("/api/workspace/rename", json={"path": "a.txt", "newName": "b.txt"})

        assert res.status_code == 409
        assert res.json()["detail"] == {"error": "A file named 'b.txt' already exists", "reason": "Conflict"}

    def test_move_into_itself_is_400(self, api_client, configured_workspace):
        """移动到自身子目录返回 SelfContainment。"""
        (configured_workspace / "foo" / "bar").mkdir(parents=True)

        res = api_client.post("/api/workspace/move", json={"sourcePath": "foo", "destinationDir": "foo/bar"})

        assert res.status_code == 400
        assert res.json()["detail"]["reason"] == "SelfContainment"

    def test_missing_fields_are_invalid_input(self, api_client):
        """缺少字段返回 400 InvalidInput。"""
        res = api_client.post("/api/workspace/rename", json={"path": "a.txt"})

        assert res.status_code == 400
        assert res.json()["detail"]["reason"] == "InvalidInput"
        assert "newName" in res.json()["detail"]["error"]

    def test_malformed_json_is_invalid_input(self, api_client):
        """非法 JSON 返回 400 InvalidInput。"""
        res = api_client.post(
            "/api/workspace/mkdir",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert res.status_code == 400
        assert res.json()["detail"]["reason"] == "InvalidInput"

    def test_watch_without_workspace_is_404(self, api_client, monkeypatch, tmp_path):
        """工作区不存在时 watch 返回 404。"""
        from shared.config import settings

        monkeypatch.setattr(settings, "workspace_root", str(tmp_path / "missing"))
        res = api_client.get("/api/workspace/watch")

        assert res.status_code == 404
        assert res.json()["detail"]["reason"] == "WorkspaceUnavailable"


class TestHealth:
    """测试健康检查。"""

    def test_health(self, api_client):
        res = api_client.get("/health")
        assert res.status_code == 200
        assert res.json()["status"] == "ok"
        assert res.json()["workspace"] is True
