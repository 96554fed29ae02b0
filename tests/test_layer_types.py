import pytest

from layercal.layer_types import (
    LayerKind,
    ShapeContext,
    default_config,
    flops,
    get_layer_types,
    parameter_count,
    schema_for,
)

LSTM_BASE = {'input_size': 128, 'hidden_size': 256, 'num_layers': 1, 'bidirectional': False}


# Parameter counts

def test_embedding_params():
    assert parameter_count('embedding', {'vocab_size': 10000, 'embedding_dim': 128}) == 1_280_000
    assert parameter_count('embedding', {'vocab_size': 50000, 'embedding_dim': 512}) == 25_600_000


def test_linear_params_with_and_without_bias():
    assert parameter_count('linear', {'input_dim': 512, 'output_dim': 256, 'use_bias': True}) == 131_328
    assert parameter_count('linear', {'input_dim': 512, 'output_dim': 256, 'use_bias': False}) == 131_072


def test_conv2d_params():
    assert parameter_count('conv2d', {'in_channels': 3, 'out_channels': 64, 'kernel_size': 3, 'use_bias': True}) == 1_792
    # 1x1 convolution, no bias
    assert parameter_count('conv2d', {'in_channels': 256, 'out_channels': 256, 'kernel_size': 1, 'use_bias': False}) == 65_536


def test_lstm_single_layer():
    # 4 * (128*256 + 256*256 + 512)
    assert parameter_count('lstm', LSTM_BASE) == 395_264


def test_lstm_stacked_bidirectional_feeds_2h_into_second_layer():
    config = dict(LSTM_BASE, num_layers=2, bidirectional=True)
    # layer 0: 4*(128*256 + 256^2 + 512)*2 = 790528; layer 1 takes 512 inputs: 1576960
    assert parameter_count('lstm', config) == 2_367_488


def test_gru_params():
    assert parameter_count('gru', LSTM_BASE) == 296_448


@pytest.mark.parametrize('bidirectional', [False, True])
def test_gru_is_three_quarters_of_lstm(bidirectional):
    config = dict(LSTM_BASE, bidirectional=bidirectional)
    assert parameter_count('gru', config) * 4 == parameter_count('lstm', config) * 3


def test_transformer_params():
    # MHA 1050624 + FFN 2099712 + LayerNorm 2048
    assert parameter_count('transformer', {'d_model': 512, 'num_heads': 8, 'd_ff': 2048, 'dropout': 0.1}) == 3_152_384


def test_attention_params_are_projections_only():
    assert parameter_count('attention', {'d_model': 512, 'num_heads': 8}) == 1_050_624


def test_norm_params():
    assert parameter_count('batchnorm', {'num_features': 128}) == 256
    assert parameter_count('batchnorm', {'num_features': 1024}) == 2048
    assert parameter_count('layernorm', {'normalized_shape': 512}) == 1024


@pytest.mark.parametrize('kind', ['dropout', 'maxpool2d', 'avgpool2d', 'relu', 'softmax'])
def test_parameter_free_layers(kind):
    assert parameter_count(kind, default_config(kind)) == 0


# FLOPs

def test_embedding_and_activation_flops_are_zero():
    for kind in ('embedding', 'dropout', 'relu', 'softmax'):
        assert flops(kind, default_config(kind)) == 0


def test_linear_flops_exclude_bias():
    assert flops('linear', {'input_dim': 512, 'output_dim': 256, 'use_bias': True}) == 262_144


def test_conv2d_flops():
    config = {'in_channels': 3, 'out_channels': 64, 'kernel_size': 3, 'use_bias': True}
    assert flops('conv2d', config, ShapeContext(input_size=224)) == 173_408_256
    assert flops('conv2d', config) == 173_408_256


def test_recurrent_flops_scale_linearly_with_sequence_length():
    for kind in ('lstm', 'gru'):
        short = flops(kind, LSTM_BASE, ShapeContext(seq_len=64))
        long = flops(kind, LSTM_BASE, ShapeContext(seq_len=128))
        assert long == 2 * short


def test_bidirectional_lstm_doubles_flops():
    uni = flops('lstm', LSTM_BASE, ShapeContext(seq_len=128))
    bi = flops('lstm', dict(LSTM_BASE, bidirectional=True), ShapeContext(seq_len=128))
    assert bi == 2 * uni


def test_lstm_default_sequence_length_is_128():
    assert flops('lstm', LSTM_BASE) == flops('lstm', LSTM_BASE, ShapeContext(seq_len=128))
    assert flops('lstm', LSTM_BASE) == 100_663_296


def test_transformer_flops():
    config = {'d_model': 512, 'num_heads': 8, 'd_ff': 2048, 'dropout': 0.1}
    # qkv 805306368 + scores 268435456 + output 268435456 + ffn 2147483648
    assert flops('transformer', config, ShapeContext(seq_len=512)) == 3_489_660_928
    assert flops('transformer', config) == 3_489_660_928


def test_attention_flops_have_no_ffn_term():
    attn = flops('attention', {'d_model': 512, 'num_heads': 8})
    assert attn == 1_342_177_280
    assert attn < flops('transformer', default_config('transformer'))


def test_norm_flops_use_batch_defaults():
    assert flops('batchnorm', {'num_features': 128}) == 128 * 32 * 1 * 4
    assert flops('batchnorm', {'num_features': 128}, ShapeContext(batch_size=8, spatial_size=49)) == 128 * 8 * 49 * 4
    assert flops('layernorm', {'normalized_shape': 512}) == 512 * 32 * 512 * 5


def test_pool_flops():
    # floor(224 / 2) = 112 -> 64 * 112^2 * 4
    context = ShapeContext(channels=64, input_size=224)
    assert flops('maxpool2d', {'kernel_size': 2}, context) == 3_211_264
    assert flops('avgpool2d', {'kernel_size': 2}, context) == flops('maxpool2d', {'kernel_size': 2}, context)
    # 224 / 3 floors to 74
    assert flops('maxpool2d', {'kernel_size': 3}) == 64 * 74 * 74 * 9


def test_partial_context_keeps_other_defaults():
    context = ShapeContext(channels=3)
    assert flops('maxpool2d', {'kernel_size': 2}, context) == 3 * 112 * 112 * 4


@pytest.mark.parametrize('kind', list(LayerKind))
def test_defaults_give_non_negative_integers(kind):
    config = default_config(kind)
    assert isinstance(parameter_count(kind, config), int)
    assert isinstance(flops(kind, config), int)
    assert parameter_count(kind, config) >= 0
    assert flops(kind, config) >= 0


@pytest.mark.parametrize('kind', list(LayerKind))
def test_default_config_matches_schema(kind):
    assert set(default_config(kind)) == {f.key for f in schema_for(kind)}


# Descriptors

def test_descriptor_table_covers_every_kind():
    types = get_layer_types('en', False)
    assert set(types) == set(LayerKind)
    assert types[LayerKind.EMBEDDING].name == 'Embedding'


def test_descriptors_vary_display_but_not_formulas():
    light = get_layer_types('en', False)[LayerKind.LINEAR]
    dark_ko = get_layer_types('ko', True)[LayerKind.LINEAR]

    assert light.color != dark_ko.color
    assert light.name != dark_ko.name
    assert dark_ko.fields[0].label == '입력 차원'
    config = light.default_params
    assert light.calculate(config) == dark_ko.calculate(config) == 131_328
    assert light.calculate_flops(config) == dark_ko.calculate_flops(config)


def test_descriptor_table_is_cached_and_read_only():
    first = get_layer_types('en', True)
    assert get_layer_types('en', True) is first
    with pytest.raises(TypeError):
        first[LayerKind.RELU] = None


def test_unknown_language_falls_back_to_english():
    assert get_layer_types('xx', False)[LayerKind.GRU].description == get_layer_types('en', False)[LayerKind.GRU].description


def test_descriptor_to_dict():
    data = get_layer_types('en', False)[LayerKind.DROPOUT].to_dict()
    assert data['type'] == 'dropout'
    assert data['defaultParams'] == {'rate': 0.1}
    assert data['fields'] == [{'key': 'rate', 'type': 'real', 'label': 'Dropout rate', 'min': 0, 'max': 1, 'step': 0.1}]


def test_spatial_size_only_scales_batchnorm():
    conv = default_config('conv2d')
    pool = {'kernel_size': 2}
    context = ShapeContext(spatial_size=32)

    assert flops('conv2d', conv, context) == flops('conv2d', conv)
    assert flops('maxpool2d', pool, context) == flops('maxpool2d', pool)
    assert flops('batchnorm', {'num_features': 128}, context) == 128 * 32 * 32 * 4

    # input_size is the one that shrinks feature maps
    assert flops('conv2d', conv, ShapeContext(input_size=32)) < flops('conv2d', conv)
