"""Route test helpers — create projects and documents through the public API."""


async def make_project(client, name: str = "Shadow of the Crescent", confirm: bool = True) -> dict:
    res = await client.post("/api/v1/projects", json={"name": name})
    assert res.status_code == 201, res.text
    project = res.json()["project"]
    if confirm:
        res = await client.post(f"/api/v1/projects/{project['id']}/confirm")
        assert res.status_code == 200, res.text
        project = res.json()["project"]
    return project


async def make_doc(client, project: dict, **fields) -> dict:
    body = {"project_name": project["name"], "doc_type": "scene", "title": "Untitled"}
    body.update(fields)
    res = await client.post("/api/v1/docs", json=body)
    assert res.status_code == 201, res.text
    return res.json()
