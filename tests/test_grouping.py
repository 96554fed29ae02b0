import pytest

from layercal.grouping import (
    RANK_FLAT,
    RANK_SPATIAL,
    annotate,
    build_units,
    expand_groups,
    group_layers,
    resolve_ranks,
)
from layercal.layer_types import LayerKind


def test_identical_consecutive_layers_collapse(make_model):
    groups = group_layers(make_model('embedding', 'transformer', 'transformer', 'transformer', 'linear'))

    assert [(g.kind, g.count) for g in groups] == [
        (LayerKind.EMBEDDING, 1),
        (LayerKind.TRANSFORMER, 3),
        (LayerKind.LINEAR, 1),
    ]
    assert groups[1].member_ids == ('layer_1', 'layer_2', 'layer_3')
    assert groups[1].start == 1
    assert groups[2].start == 4


def test_different_configs_are_not_merged(make_model):
    model = make_model(('linear', {'output_dim': 128}), ('linear', {'output_dim': 64}))
    groups = group_layers(model)
    assert [g.count for g in groups] == [1, 1]
    assert groups[0].config['output_dim'] == 128


def test_only_consecutive_runs_are_merged(make_model):
    groups = group_layers(make_model('relu', 'relu', 'dropout', 'relu'))
    assert [(g.kind, g.count) for g in groups] == [
        (LayerKind.RELU, 2),
        (LayerKind.DROPOUT, 1),
        (LayerKind.RELU, 1),
    ]


def test_group_counts_cover_every_layer(make_model):
    model = make_model('conv2d', 'conv2d', 'relu', 'maxpool2d', 'conv2d', 'linear', 'linear', 'softmax')
    assert sum(g.count for g in group_layers(model)) == len(model)


def test_empty_model_has_no_groups(make_model):
    assert group_layers(make_model()) == []
    assert build_units(make_model()) == []


def test_expand_then_regroup_is_stable(make_model):
    model = make_model('lstm', 'lstm', ('dropout', {'rate': 0.3}), 'dropout', 'linear')
    groups = group_layers(model)
    expanded = expand_groups(groups)

    assert [layer.id for layer in expanded] == [layer.id for layer in model]
    assert [layer.config for layer in expanded] == [layer.config for layer in model]
    assert group_layers(expanded) == groups


def test_grouping_does_not_alias_model_configs(make_model):
    model = make_model('linear')
    group = group_layers(model)[0]
    model[0].update('output_dim', 10)
    assert group.config['output_dim'] == 256


# Naming

def test_names_count_per_kind(make_model):
    model = make_model(
        ('linear', {'output_dim': 128}),
        'relu',
        ('linear', {'input_dim': 128, 'output_dim': 64}),
        'relu',
        ('linear', {'input_dim': 64, 'output_dim': 10}),
    )
    names = [unit.name for unit in build_units(model)]
    assert names == ['fc', 'relu', 'fc2', 'relu2', 'fc3']


def test_a_repeated_run_gets_one_name(make_model):
    units = build_units(make_model('transformer', 'transformer', 'attention'))
    assert [(u.name, u.count, u.repeated) for u in units] == [
        ('transformer', 2, True),
        ('attn', 1, False),
    ]


def test_unit_to_dict(make_model):
    units = build_units(make_model('conv2d', 'batchnorm', 'batchnorm'))
    assert units[1].to_dict() == {
        'type': 'batchnorm',
        'config': {'num_features': 128},
        'count': 2,
        'layer_ids': ['layer_1', 'layer_2'],
        'name': 'bn',
        'rank': RANK_SPATIAL,
    }
    assert 'rank' not in units[0].to_dict()


# Normalization rank

@pytest.mark.parametrize('kinds, expected', [
    (('conv2d', 'relu', 'batchnorm'), RANK_SPATIAL),
    (('conv2d', 'maxpool2d', 'dropout', 'batchnorm'), RANK_SPATIAL),
    (('linear', 'batchnorm'), RANK_FLAT),
    (('batchnorm',), RANK_FLAT),
    (('conv2d', 'linear', 'batchnorm'), RANK_FLAT),
    (('conv2d', 'layernorm'), RANK_SPATIAL),
])
def test_norm_rank_follows_preceding_layers(make_model, kinds, expected):
    unit = build_units(make_model(*kinds))[-1]
    assert unit.kind in (LayerKind.BATCHNORM, LayerKind.LAYERNORM)
    assert unit.rank == expected


def test_rank_is_only_attached_to_norm_layers(make_model):
    units = build_units(make_model('conv2d', 'relu', 'linear'))
    assert [u.rank for u in units] == [None, None, None]


def test_resolve_ranks_is_rank_before_each_layer(make_model):
    model = make_model('linear', 'conv2d', 'batchnorm', 'linear', 'batchnorm')
    assert resolve_ranks(model) == [RANK_FLAT, RANK_FLAT, RANK_SPATIAL, RANK_SPATIAL, RANK_FLAT]


def test_annotate_uses_first_member_of_each_group(make_model):
    model = make_model('conv2d', 'batchnorm', 'batchnorm', 'linear', 'batchnorm')
    units = annotate(group_layers(model), list(model))
    assert [(u.name, u.rank) for u in units if u.kind == LayerKind.BATCHNORM] == [
        ('bn', RANK_SPATIAL),
        ('bn2', RANK_FLAT),
    ]
