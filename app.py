"""
LayerCal Web Application
A Flask-based API that counts parameters, FLOPs and memory of a layer stack
and exports it as PyTorch, TensorFlow or JAX code.
"""

import os
from dataclasses import fields
from typing import Any, Dict, Optional

from flask import Flask, render_template, request, jsonify, Response

import layercal
from layercal.aggregate import summarize
from layercal.codegen import FRAMEWORKS, create_generator
from layercal.errors import LayerCalError, ModelError
from layercal.formatting import format_bytes, format_model_size, format_number
from layercal.grouping import build_units
from layercal.layer_types import ShapeContext, get_layer_types
from layercal.memory import calculate_memory, model_size_mb
from layercal.model import Model
from layercal.settings import DefaultConfig, get_setting, get_settings, update_settings
from layercal.translations import DEFAULT_LANGUAGE, LANGUAGE_OPTIONS, TRANSLATIONS

TEMPLATE_DIR = os.path.join(os.path.dirname(layercal.__file__), 'templates')

app = Flask(__name__, template_folder=TEMPLATE_DIR)
app.config.from_object(DefaultConfig)
app.config.from_prefixed_env('LAYERCAL')
app.logger.setLevel(app.config['LOG_LEVEL'])


def get_payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ModelError("Request body must be a JSON object")
    return data


def get_model(data: Dict[str, Any]) -> Model:
    return Model.from_payload(data.get('layers', []))


def get_option(data: Dict[str, Any], key: str, setting: str) -> str:
    """A string option from the body, or the user's saved setting when absent."""
    value = data.get(key)
    if value is None or value == '':
        return get_setting(setting)
    if not isinstance(value, str):
        raise ModelError(f"'{key}' must be a string, got {value!r}")
    return value


def get_context(data: Dict[str, Any]) -> Optional[ShapeContext]:
    """
    Parse optional shape overrides such as {"seq_len": 256}.

    ``input_size`` is the image side seen by Conv2D and pooling layers;
    ``spatial_size`` is only the H*W multiplier of BatchNorm.
    """
    context = data.get('context')
    if not context:
        return None
    if not isinstance(context, dict):
        raise ModelError("'context' must be a JSON object")

    allowed = {f.name for f in fields(ShapeContext)}
    values = {}
    for key, value in context.items():
        if key not in allowed:
            raise ModelError(
                f"Unknown context field '{key}'; expected one of {', '.join(sorted(allowed))} "
                "(input_size is the Conv2D/pooling image side, spatial_size the BatchNorm H*W)"
            )
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ModelError(f"Context field '{key}' must be a positive integer")
        values[key] = value
    return ShapeContext(**values)


def parse_flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.lower() in ('1', 'true', 'yes', 'on')


@app.errorhandler(LayerCalError)
def handle_layercal_error(error: LayerCalError):
    app.logger.warning("Rejected %s %s: %s", request.method, request.path, error.message)
    return jsonify({
        'success': False,
        'errors': [error.to_dict()]
    }), error.status_code


@app.route('/')
def index():
    """Render the main application page."""
    return render_template('index.html', settings=get_settings(), languages=LANGUAGE_OPTIONS)


@app.route('/api/layer-types')
def layer_types():
    """List the layer palette for the requested (or saved) language and theme."""
    language = request.args.get('lang') or get_setting('language')
    if language not in TRANSLATIONS:
        language = DEFAULT_LANGUAGE
    dark_mode = parse_flag(request.args.get('dark'))
    if dark_mode is None:
        dark_mode = get_setting('dark_mode')

    descriptors = get_layer_types(language, dark_mode)
    return jsonify({
        'language': language,
        'dark_mode': dark_mode,
        'languages': LANGUAGE_OPTIONS,
        'frameworks': list(FRAMEWORKS),
        'layer_types': [descriptor.to_dict() for descriptor in descriptors.values()]
    })


@app.route('/api/settings', methods=['GET', 'POST'])
def settings():
    """Read or update the user's display settings."""
    if request.method == 'POST':
        return jsonify(update_settings(request.get_json(silent=True)))
    return jsonify(get_settings())


@app.route('/api/calculate', methods=['POST'])
def calculate():
    """Compute parameter, FLOPs and memory totals for the posted layers."""
    data = get_payload()
    model = get_model(data)
    precision = get_option(data, 'precision', 'precision')
    mode = get_option(data, 'mode', 'memory_mode')

    summary = summarize(model, get_context(data))
    memory_bytes = calculate_memory(summary.total_params, mode, precision)
    size_mb = model_size_mb(summary.total_params)

    return jsonify({
        'success': True,
        'total_params': summary.total_params,
        'total_flops': summary.total_flops,
        'memory_bytes': memory_bytes,
        'model_size_mb': size_mb,
        'num_layers': len(model),
        'precision': precision,
        'mode': mode,
        'formatted': {
            'total_params': f"{summary.total_params:,}",
            'total_flops': format_number(summary.total_flops),
            'memory': format_bytes(memory_bytes),
            'model_size': format_model_size(size_mb),
        },
        'layers': [stats.to_dict() for stats in summary.layers]
    })


@app.route('/api/groups', methods=['POST'])
def groups():
    """Show how the posted layers are grouped and named for code export."""
    model = get_model(get_payload())
    return jsonify({
        'success': True,
        'units': [unit.to_dict() for unit in build_units(model)]
    })


@app.route('/api/code', methods=['POST'])
def code_preview():
    """Return generated code as JSON for the preview pane."""
    data = get_payload()
    framework = get_option(data, 'framework', 'framework')
    generator = create_generator(framework, get_model(data))
    return jsonify({
        'success': True,
        'framework': framework,
        'filename': generator.filename,
        'code': generator.generate()
    })


@app.route('/api/export', methods=['POST'])
def export_code():
    """Export the network as a source file for the chosen framework."""
    data = get_payload()
    framework = get_option(data, 'framework', 'framework')
    model = get_model(data)
    generator = create_generator(framework, model)
    code = generator.generate()
    app.logger.info("Exported %d layers as %s", len(model), framework)

    return Response(
        code,
        mimetype='text/plain',
        headers={'Content-Disposition': f'attachment; filename={generator.filename}'}
    )


if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
