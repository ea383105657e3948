"""Tests for composite blocks."""

import pytest

from infradraw.composite import create_rest_api_composite
from infradraw.model import GraphModel
from infradraw.resource_types import ResourceType
from infradraw.schema import SchemaCatalog
from infradraw.types import Point


@pytest.fixture
def model(app):
    return GraphModel()


@pytest.fixture
def grouped(model):
    first = model.addBlock("aws_vpc", 100.0, 50.0, "")
    second = model.addBlock("aws_subnet", 40.0, 200.0, "")
    outside = model.addBlock("aws_instance", 400.0, 0.0, "")
    composite_id = model.groupBlocks([first, second], "Network")
    return composite_id, first, second, outside


class TestTemplates:
    def test_rest_api_template(self):
        composite = create_rest_api_composite(SchemaCatalog(), 10.0, 20.0, api_name="orders")
        assert composite.name == "REST API: orders"
        assert composite.properties == {"api_name": "orders", "stage_name": "v1"}
        rest_api, resource = composite.children
        assert rest_api.resource_type is ResourceType.API_GATEWAY
        assert (rest_api.x, rest_api.y) == (60.0, 70.0)
        assert rest_api.properties["name"] == "orders"
        assert resource.resource_type is ResourceType.API_GATEWAY_RESOURCE
        assert resource.properties["rest_api_id"] == "${aws_api_gateway_rest_api.orders.id}"
        assert resource.properties["parent_id"] == "${aws_api_gateway_rest_api.orders.root_resource_id}"

    def test_add_from_template(self, model):
        composite_id = model.addCompositeFromTemplate("rest_api", 0.0, 0.0, "shop")
        assert composite_id.startswith("composite_")
        assert model.composites[0]["name"] == "REST API: shop"
        assert len(model.composites[0]["childIds"]) == 2
        assert model.count == 0
        assert len(model.all_blocks()) == 2

    def test_custom_and_unknown_templates(self, model):
        assert model.addCompositeFromTemplate("custom", 5.0, 5.0, "")
        assert model.getComposite(model.composites[0]["id"]).name == "Group"
        assert model.addCompositeFromTemplate("bogus", 0.0, 0.0, "x") == ""
        assert model.compositeTemplates == ["rest_api", "custom"]

    def test_template_children_reference_each_other(self, model):
        composite_id = model.addCompositeFromTemplate("rest_api", 0.0, 0.0, "api")
        rest_api, resource = model.getComposite(composite_id).children
        assert model.referencingBlocks(rest_api.id) == [resource.id]


class TestGrouping:
    def test_group_moves_blocks_off_canvas(self, model, grouped):
        composite_id, first, second, outside = grouped
        composite = model.getComposite(composite_id)
        assert composite.name == "Network"
        assert composite.position == Point(40.0, 50.0)
        assert [child.id for child in composite.children] == [first, second]
        assert [block.id for block in model.get_blocks()] == [outside]
        assert model.getBlock(first) is composite.children[0]
        assert model.composite_of(first) is composite

    def test_group_ignores_unknown_ids(self, model):
        assert model.groupBlocks(["missing"], "Empty") == ""
        assert model.composites == []

    def test_connections_survive_grouping(self, model, grouped):
        composite_id, first, _, outside = grouped
        connection_id = model.addConnection(first, outside)
        assert connection_id
        assert model.connections[0]["sourceId"] == first

    def test_move_composite_moves_children(self, model, grouped):
        composite_id, first, second, _ = grouped
        model.moveComposite(composite_id, 140.0, 150.0)
        assert (model.getBlock(first).x, model.getBlock(first).y) == (200.0, 150.0)
        assert (model.getBlock(second).x, model.getBlock(second).y) == (140.0, 300.0)

    def test_child_edits_notify_composites(self, model, grouped):
        _, first, _, _ = grouped
        emitted = []
        model.compositesChanged.connect(lambda: emitted.append(True))
        model.setBlockLabel(first, "Core VPC")
        assert model.getBlock(first).label == "Core VPC"
        assert emitted == [True]

    def test_ungroup_returns_children(self, model, grouped):
        composite_id, first, second, outside = grouped
        model.enterComposite(composite_id)
        assert model.ungroupComposite(composite_id)
        assert model.composites == []
        assert model.activeCompositeId == ""
        assert [block.id for block in model.get_blocks()] == [outside, first, second]
        assert not model.ungroupComposite(composite_id)

    def test_remove_composite_cascades(self, model, grouped):
        composite_id, first, second, outside = grouped
        model.addConnection(first, outside)
        model.addConnection(outside, second)
        assert model.removeComposite(composite_id)
        assert model.getBlock(first) is None
        assert model.getBlock(second) is None
        assert model.connections == []
        assert [block.id for block in model.all_blocks()] == [outside]
        assert not model.removeComposite(composite_id)

    def test_remove_child_block(self, model, grouped):
        composite_id, first, second, outside = grouped
        model.addConnection(first, outside)
        model.removeBlock(first)
        assert model.getBlock(first) is None
        assert [child.id for child in model.getComposite(composite_id).children] == [second]
        assert model.connections == []

    def test_add_and_remove_child(self, model, grouped):
        composite_id, first, _, outside = grouped
        assert model.addChildToComposite(composite_id, outside)
        assert model.count == 0
        assert not model.addChildToComposite(composite_id, outside)
        assert not model.addChildToComposite("missing", first)

        assert model.removeChildFromComposite(composite_id, first)
        assert [block.id for block in model.get_blocks()] == [first]
        assert not model.removeChildFromComposite(composite_id, first)
        assert not model.removeChildFromComposite("missing", first)

    def test_composite_children_snapshot(self, model, grouped):
        composite_id, first, _, _ = grouped
        children = model.compositeChildren(composite_id)
        assert children[0] == {"id": first, "label": "VPC", "x": 100.0, "y": 50.0, "width": 120.0, "height": 40.0}
        assert model.compositeChildren("missing") == []

    def test_enter_and_exit(self, model, grouped):
        composite_id = grouped[0]
        assert model.enterComposite(composite_id)
        assert model.activeCompositeId == composite_id
        model.exitComposite()
        assert model.activeCompositeId == ""
        assert not model.enterComposite("missing")

    def test_drag_can_target_children(self, model, grouped):
        _, first, _, outside = grouped
        model.startConnectionDrag(outside, "output")
        child = model.getBlock(first)
        connection_id = model.endConnectionDrag(child.input_point.x + 2.0, child.input_point.y)
        assert connection_id
        assert model.get_connections()[0].target_block_id == first


class TestSerialization:
    def test_round_trip_with_composites(self, model, grouped):
        composite_id, first, _, outside = grouped
        model.addConnection(first, outside)
        data = model.to_dict()
        assert data["composites"][0]["id"] == composite_id
        assert len(data["composites"][0]["children"]) == 2

        restored = GraphModel()
        restored.from_dict(data)
        assert restored.to_dict() == data
        assert restored.composite_of(first).id == composite_id
        assert len(restored.get_connections()) == 1

    def test_clear_all_drops_composites(self, model, grouped):
        model.clearAll()
        assert model.composites == []
        assert model.all_blocks() == []
