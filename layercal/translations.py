"""
Display strings for the layer palette.

Only names, descriptions and field labels live here; nothing in this module
feeds a calculation.
"""

from typing import Dict

DEFAULT_LANGUAGE = 'en'

LANGUAGE_OPTIONS = [
    {'code': 'en', 'label': 'English', 'flag': '🇺🇸'},
    {'code': 'ko', 'label': '한국어', 'flag': '🇰🇷'},
]

TRANSLATIONS: Dict[str, Dict] = {
    'en': {
        'title': 'LayerCal',
        'subtitle': 'Deep learning model parameter calculator',
        'layers': {
            'embedding': ('Embedding', 'Maps token ids to dense vectors'),
            'linear': ('Linear', 'Fully connected layer'),
            'conv2d': ('Conv2D', '2D convolution over an image'),
            'lstm': ('LSTM', 'Long short-term memory recurrent layer'),
            'gru': ('GRU', 'Gated recurrent unit layer'),
            'transformer': ('Transformer', 'Encoder block: attention + feed-forward'),
            'attention': ('Attention', 'Multi-head self-attention'),
            'batchnorm': ('BatchNorm', 'Normalizes activations over the batch'),
            'layernorm': ('LayerNorm', 'Normalizes activations over features'),
            'dropout': ('Dropout', 'Randomly zeroes activations while training'),
            'maxpool2d': ('MaxPool2D', 'Takes the maximum over each window'),
            'avgpool2d': ('AvgPool2D', 'Takes the average over each window'),
            'relu': ('ReLU', 'Rectified linear activation'),
            'softmax': ('Softmax', 'Turns logits into probabilities'),
        },
        'fields': {
            'vocab_size': 'Vocabulary size',
            'embedding_dim': 'Embedding dim',
            'input_dim': 'Input dim',
            'output_dim': 'Output dim',
            'use_bias': 'Use bias',
            'in_channels': 'In channels',
            'out_channels': 'Out channels',
            'kernel_size': 'Kernel size',
            'input_size': 'Input size',
            'hidden_size': 'Hidden size',
            'num_layers': 'Num layers',
            'bidirectional': 'Bidirectional',
            'd_model': 'Model dim',
            'num_heads': 'Num heads',
            'd_ff': 'FFN dim',
            'dropout': 'Dropout',
            'num_features': 'Num features',
            'normalized_shape': 'Num features',
            'rate': 'Dropout rate',
        },
    },
    'ko': {
        'title': 'LayerCal',
        'subtitle': '딥러닝 모델 파라미터 계산기',
        'layers': {
            'embedding': ('임베딩', '토큰 ID를 밀집 벡터로 변환'),
            'linear': ('선형', '완전연결 레이어'),
            'conv2d': ('Conv2D', '이미지에 대한 2D 컨볼루션'),
            'lstm': ('LSTM', '장단기 메모리 순환 레이어'),
            'gru': ('GRU', '게이트 순환 유닛 레이어'),
            'transformer': ('트랜스포머', '인코더 블록: 어텐션 + 피드포워드'),
            'attention': ('어텐션', '멀티헤드 셀프 어텐션'),
            'batchnorm': ('배치 정규화', '배치 단위로 활성값 정규화'),
            'layernorm': ('레이어 정규화', '특징 단위로 활성값 정규화'),
            'dropout': ('드롭아웃', '학습 중 활성값을 무작위로 0으로 설정'),
            'maxpool2d': ('MaxPool2D', '각 윈도우의 최댓값'),
            'avgpool2d': ('AvgPool2D', '각 윈도우의 평균값'),
            'relu': ('ReLU', 'ReLU 활성화 함수'),
            'softmax': ('Softmax', '로짓을 확률로 변환'),
        },
        'fields': {
            'vocab_size': '어휘 크기',
            'embedding_dim': '임베딩 차원',
            'input_dim': '입력 차원',
            'output_dim': '출력 차원',
            'use_bias': '편향 사용',
            'in_channels': '입력 채널',
            'out_channels': '출력 채널',
            'kernel_size': '커널 크기',
            'input_size': '입력 크기',
            'hidden_size': '은닉 크기',
            'num_layers': '레이어 수',
            'bidirectional': '양방향',
            'd_model': '모델 차원',
            'num_heads': '헤드 수',
            'd_ff': 'FFN 차원',
            'dropout': '드롭아웃',
            'num_features': '특징 수',
            'normalized_shape': '특징 수',
            'rate': '드롭아웃 비율',
        },
    },
}


def get_translations(language: str) -> Dict:
    """Return the string table for a language, falling back to English."""
    return TRANSLATIONS.get(language, TRANSLATIONS[DEFAULT_LANGUAGE])
