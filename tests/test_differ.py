#!/usr/bin/env python3
"""
TFDIFF TEST SUITE - Structural Differ
-------------------------------------
Properties of the changed-name set: symmetry, no spurious changes,
name granularity, collisions, and the end-to-end targeting line.
"""

import pytest

from tfdiff.cli.formatter import TargetFormatter
from tfdiff.core.differ import ChangeType, StructuralDiffer, blocks_equal
from tfdiff.core.models import Block, Collection, Declaration, DeclarationKind, Value
from tfdiff.parsing.pipeline import DocumentParser

BASE = b"""
resource "aws_instance" "web" {
  ami           = "ami-123"
  instance_type = "t3.micro"

  root_block_device {
    volume_size = 20
  }

  tags = {
    Name = "web"
  }
}

resource "aws_s3_bucket" "logs" {
  bucket = "logs"
}

module "network" {
  source = "./modules/network"
  cidr   = "10.0.0.0/16"
}
"""


def parse(content: bytes, **kwargs) -> Collection:
    return DocumentParser(**kwargs).parse(content)


def diff(base: bytes, target: bytes, **kwargs):
    return StructuralDiffer().diff(parse(base, **kwargs), parse(target, **kwargs))


def test_end_to_end_example():
    base = b'resource "aws_instance" "a" { ami = "x" }\n'
    target = b'resource "aws_instance" "a" { ami = "y" }\nresource "aws_instance" "b" { ami = "z" }\n'

    changed = diff(base, target)

    assert changed == {"aws_instance.a", "aws_instance.b"}
    assert TargetFormatter().render(changed) == "-target aws_instance.a -target aws_instance.b "


def test_end_to_end_noop_example():
    document = b'module "net" {\n  source = "./m"\n}\n'

    changed = diff(document, document)

    assert changed == set()
    assert TargetFormatter().render(changed) == "-refresh=false"


def test_identical_documents_have_no_changes():
    assert diff(BASE, BASE) == set()


def test_formatting_only_changes_are_ignored():
    """NO SPURIOUS CHANGES: layout, comments and attribute order do not matter."""
    target = b"""
# reformatted
module "network" {
  cidr = "10.0.0.0/16"   # same value
  source = "./modules/network"
}

resource "aws_s3_bucket" "logs" { bucket = "logs" }

resource "aws_instance" "web" {
  tags = { Name = "web" }
  root_block_device {
    volume_size = 20.0
  }
  instance_type = "t3.micro"
  ami = "ami-123"
}
"""
    assert diff(BASE, target) == set()


def test_symmetry():
    target = BASE.replace(b'bucket = "logs"', b'bucket = "audit"').replace(b"module", b"#module", 1)
    target = target.replace(b'  source = "./modules/network"\n  cidr   = "10.0.0.0/16"\n}', b"")
    target += b'resource "aws_eip" "ip" {}\n'

    forward = diff(BASE, target)
    backward = diff(target, BASE)

    assert forward == backward == {"aws_s3_bucket.logs", "module.network", "aws_eip.ip"}


def test_granularity_deep_change_marks_only_its_declaration():
    base = b"""
resource "aws_lb_listener" "https" {
  port = 443
  default_action {
    forward {
      stickiness {
        duration = 3600
      }
    }
  }
}

resource "aws_lb_listener" "http" {
  port = 80
}
"""
    target = base.replace(b"duration = 3600", b"duration = 7200")

    assert diff(base, target) == {"aws_lb_listener.https"}


def test_kind_matters_for_equality():
    """A string "1" and the number 1 are different values."""
    base = b'resource "t" "a" {\n  v = "1"\n}\n'
    target = b'resource "t" "a" {\n  v = 1\n}\n'
    assert diff(base, target) == {"t.a"}


def test_absent_and_empty_bodies_are_equal():
    base = b'resource "t" "a" {}\n'
    target = b'resource "t" "a" {\n\n}\n'
    assert diff(base, target) == set()


def test_added_nested_block_is_a_change():
    base = b'resource "t" "a" {\n  v = 1\n}\n'
    target = b'resource "t" "a" {\n  v = 1\n  lifecycle {}\n}\n'
    assert diff(base, target) == {"t.a"}


def test_collision_keeps_last_declaration():
    base = b'resource "t" "a" {\n  v = 2\n}\n'
    target = b'resource "t" "a" {\n  v = 1\n}\nresource "t" "a" {\n  v = 2\n}\n'
    assert diff(base, target) == set()


def test_repeated_nested_blocks_keep_last():
    """
    Known limitation: only the last of several same-type sibling blocks is
    compared, so a change to an earlier one goes unnoticed.
    """
    base = b'resource "t" "a" {\n  rule {\n    port = 80\n  }\n  rule {\n    port = 443\n  }\n}\n'
    target = base.replace(b"port = 80", b"port = 8080")
    assert diff(base, target) == set()


def test_reference_changes_need_tracking():
    base = b'resource "t" "a" {\n  subnet_id = var.subnet_a\n}\n'
    target = b'resource "t" "a" {\n  subnet_id = var.subnet_b\n}\n'

    assert diff(base, target) == set()
    assert diff(base, target, track_references=True) == {"t.a"}


def test_empty_collections():
    assert diff(b"", b"") == set()
    assert diff(b"", BASE) == {"aws_instance.web", "aws_s3_bucket.logs", "module.network"}


def test_classify_labels_changes():
    target = BASE.replace(b'ami           = "ami-123"', b'ami           = "ami-456"')
    target = target.replace(b'resource "aws_s3_bucket" "logs" {\n  bucket = "logs"\n}\n', b"")
    target += b'module "dns" {\n  source = "./modules/dns"\n}\n'

    changes = StructuralDiffer().classify(parse(BASE), parse(target))

    assert changes == {
        "aws_instance.web": ChangeType.MODIFIED,
        "aws_s3_bucket.logs": ChangeType.REMOVED,
        "module.dns": ChangeType.ADDED,
    }


def test_declarations_compare_structure_only():
    """Location and kind are diagnostics; only attributes and blocks are compared."""
    block = Block({"v": Value.number(1)})
    left = Collection({"x": Declaration("x", DeclarationKind.RESOURCE, block.attributes, block.blocks)})
    right = Collection({"x": Declaration("x", DeclarationKind.MODULE, block.attributes, block.blocks)})

    assert StructuralDiffer().diff(left, right) == set()


def test_blocks_equal_is_recursive():
    inner = Block({"a": Value.list([Value.string("x")])})
    assert blocks_equal(Block(blocks={"b": inner}), Block(blocks={"b": Block({"a": Value.list([Value.string("x")])})}))
    assert not blocks_equal(Block(blocks={"b": inner}), Block(blocks={"b": Block({"a": Value.list([])})}))


@pytest.mark.parametrize("names, expected", [
    (set(), "-refresh=false"),
    ({"b.x"}, "-target b.x "),
    ({"module.z", "a.y", "b.x"}, "-target a.y -target b.x -target module.z "),
])
def test_target_formatter(names, expected):
    assert TargetFormatter().render(names) == expected


def test_target_formatter_custom_flags():
    formatter = TargetFormatter(target_flag="--only", noop_flag="--nothing")
    assert formatter.render([]) == "--nothing"
    assert formatter.render(["a.b"]) == "--only a.b "
