from __future__ import annotations

import json

from grocerylist.cli import main


def _write_inputs(tmp_path):
    recipes_path = tmp_path / "recipes.json"
    recipes_path.write_text(
        json.dumps(
            [
                {
                    "id": "pasta",
                    "title": "Pasta",
                    "servings": 2,
                    "ingredients": [
                        {"id": "pasta-1", "name": "Garlic", "amount": "2"},
                        {"id": "pasta-2", "name": "Spaghetti", "amount": 200, "unit": "g"},
                    ],
                },
                {
                    "id": "bread",
                    "title": "Garlic Bread",
                    "servings": 4,
                    "ingredients": [{"id": "bread-1", "name": "garlic", "amount": "1/2"}],
                },
            ]
        )
    )
    plan_path = tmp_path / "plan.json"
    plan_path.write_text(
        json.dumps(
            {
                "entries": [
                    {"id": "meal-1", "recipe_id": "pasta", "date": "2025-01-13", "meal_type": "dinner"},
                    {"id": "meal-2", "recipe_id": "bread", "date": "shelf", "meal_type": "dinner"},
                    {"id": "meal-3", "recipe_id": "gone", "date": "2025-01-14", "meal_type": "lunch"},
                ]
            }
        )
    )
    return recipes_path, plan_path


def test_build_writes_json_markdown_and_csv(tmp_path):
    recipes_path, plan_path = _write_inputs(tmp_path)
    out_json = tmp_path / "out" / "list.json"
    out_md = tmp_path / "out" / "list.md"
    out_csv = tmp_path / "out" / "list.csv"

    exit_code = main(
        [
            "build",
            "--recipes",
            str(recipes_path),
            "--meal-plan",
            str(plan_path),
            "--out-json",
            str(out_json),
            "--out-md",
            str(out_md),
            "--out-csv",
            str(out_csv),
        ]
    )

    assert exit_code == 0
    items = {item["name"]: item for item in json.loads(out_json.read_text())["items"]}
    assert items["Garlic"]["amount"] == "2 1/2"
    assert len(items["Garlic"]["sources"]) == 2
    assert items["Spaghetti"]["category"] == "PASTA, GRAINS & LEGUMES"
    assert "- [ ] Garlic: 2 1/2 (Garlic Bread, Pasta)" in out_md.read_text()
    assert out_csv.read_text().startswith("name,amount,unit")


def test_build_keeps_checked_state_of_existing_list(tmp_path):
    recipes_path, plan_path = _write_inputs(tmp_path)
    list_path = tmp_path / "list.json"
    args = ["build", "--recipes", str(recipes_path), "--meal-plan", str(plan_path), "--out-json", str(list_path)]
    assert main(args) == 0

    document = json.loads(list_path.read_text())
    for item in document["items"]:
        item["checked"] = item["name"] == "Garlic"
    list_path.write_text(json.dumps(document))

    assert main(args + ["--list", str(list_path)]) == 0

    items = {item["name"]: item for item in json.loads(list_path.read_text())["items"]}
    assert items["Garlic"]["checked"] is True
    assert items["Spaghetti"]["checked"] is False


def test_add_item_then_render_to_stdout(tmp_path, capsys):
    list_path = tmp_path / "list.json"

    assert main(["add-item", "--list", str(list_path), "--name", "Coffee", "--unit", "bag"]) == 0
    assert main(["add-item", "--list", str(list_path), "--name", "Milk", "--amount", "1 1/2", "--unit", "l"]) == 0
    capsys.readouterr()

    assert main(["render", "--list", str(list_path)]) == 0

    rendered = capsys.readouterr().out
    assert "- [ ] Coffee: 1 bag" in rendered
    assert "## Dairy, Eggs & Fridge\n- [ ] Milk: 1 1/2 l" in rendered


def test_config_file_shapes_categories(tmp_path):
    recipes_path, plan_path = _write_inputs(tmp_path)
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"category_keywords": {"ALLIUMS": ["garlic", "onion"]}}))
    out_json = tmp_path / "list.json"

    exit_code = main(
        [
            "--config",
            str(config_path),
            "build",
            "--recipes",
            str(recipes_path),
            "--meal-plan",
            str(plan_path),
            "--out-json",
            str(out_json),
        ]
    )

    assert exit_code == 0
    items = {item["name"]: item for item in json.loads(out_json.read_text())["items"]}
    assert items["Garlic"]["category"] == "ALLIUMS"
    assert items["Spaghetti"]["category"] == "FRESH PRODUCE"


def test_bad_document_returns_error_code(tmp_path):
    recipes_path, plan_path = _write_inputs(tmp_path)
    plan_path.write_text("[{\"id\": \"meal-1\"}]")

    exit_code = main(
        ["build", "--recipes", str(recipes_path), "--meal-plan", str(plan_path), "--out-json", str(tmp_path / "x.json")]
    )

    assert exit_code == 1
    assert not (tmp_path / "x.json").exists()
