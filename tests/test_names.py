import pytest

from readiness.scanner.exceptions import ImageNameFormatError
from readiness.scanner.image.names import (
    group_containers_by_image,
    parse_replacement_rules,
    resolve_image_name
)


def test_group_empty():
    assert group_containers_by_image([]) == {}


def test_group_keeps_every_container_once_in_discovery_order(make_container):
    containers = [
        make_container('a', name = 'one'),
        make_container('b', name = 'two'),
        make_container('a', name = 'three'),
        make_container('c', name = 'four'),
        make_container('a', name = 'five'),
    ]
    groups = group_containers_by_image(containers)
    assert set(groups) == {'a', 'b', 'c'}
    assert [c.name for c in groups['a']] == ['one', 'three', 'five']
    assert all(groups.values())
    flattened = [c for group in groups.values() for c in group]
    assert len(flattened) == len(containers)
    assert all(any(c is original for c in flattened) for original in containers)
    for image, group in groups.items():
        assert all(c.image == image for c in group)


@pytest.mark.parametrize('image_name', ['', 'alpine', 'quay.io/org/app:1.0', 'a|b,c'])
def test_resolve_empty_rules_is_pass_through(image_name):
    assert resolve_image_name(image_name, '') == image_name


def test_resolve_single_rule_replaces_every_occurrence():
    assert resolve_image_name('foo/foo:foo', 'foo|bar') == 'bar/bar:bar'


def test_resolve_rules_are_applied_in_sequence():
    assert resolve_image_name('registry/foo:latest', 'foo|bar,bar|baz') == 'registry/baz:latest'


def test_resolve_is_literal():
    assert resolve_image_name('registry/a.b:1', '.|_') == 'registry/a_b:1'
    assert resolve_image_name('registry/aab:1', 'a*|x') == 'registry/aab:1'


def test_resolve_registry_mirror():
    assert resolve_image_name(
        'quay.io/prometheus/node-exporter:v1.7.0',
        'quay.io|quay-mirror.example.com'
    ) == 'quay-mirror.example.com/prometheus/node-exporter:v1.7.0'


@pytest.mark.parametrize('replacement', ['a|b,c', 'a', 'a|b|c', '|b', 'a|b,'])
def test_resolve_rejects_badly_formatted_rules(replacement):
    with pytest.raises(ImageNameFormatError) as excinfo:
        resolve_image_name('registry/a:latest', replacement)
    assert excinfo.value.image_name == 'registry/a:latest'
    assert '$matchingString|$replacementString' in str(excinfo.value)


def test_resolve_error_names_the_offending_rule():
    with pytest.raises(ImageNameFormatError) as excinfo:
        resolve_image_name('registry/a:latest', 'x|y,broken')
    assert 'broken' in str(excinfo.value)


def test_parse_rules():
    assert parse_replacement_rules('') == []
    assert parse_replacement_rules('a|b,c|') == [('a', 'b'), ('c', '')]


def test_resolve_rejects_rules_that_empty_the_name():
    with pytest.raises(ImageNameFormatError) as excinfo:
        resolve_image_name('nginx', 'nginx|')
    assert excinfo.value.image_name == 'nginx'
    assert 'empty name' in str(excinfo.value)


def test_resolve_allows_empty_replacement_of_part_of_the_name():
    assert resolve_image_name('docker.io/library/nginx', 'docker.io/|') == 'library/nginx'
