#!/usr/bin/env python3
"""
Flask Web Application for the Performance Harvester
Provides REST API endpoints for running harvests and merging earlier run dumps.
"""

from flask import Flask, request, jsonify
from werkzeug.utils import secure_filename
import asyncio
import os
import tempfile
from perf_harvester import HarvestConfig, HarvestPipeline
from perf_harvester.core.errors import ConfigurationError
from perf_harvester.core.session import TokenSessionProvider
from perf_harvester.processors import DumpReader, TraceAggregator
from perf_harvester.storage import ReportWriter
from perf_harvester.web import prepare_merge_results, prepare_results

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 100 * 1024 * 1024
app.config['UPLOAD_FOLDER'] = tempfile.gettempdir()
app.config['REPORT_DIR'] = os.environ.get('REPORT_DIR', 'reports')

ALLOWED_EXTENSIONS = {'json'}


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def make_session_provider():
    """Session provider for API calls; replaced in tests."""
    return TokenSessionProvider.from_env()


async def _harvest(config, provider, writer):
    async with provider.client() as client:
        pipeline = HarvestPipeline(config, client, exporter=writer)
        return await pipeline.run()


@app.route('/api/harvest', methods=['POST'])
def harvest_api():
    """
    API endpoint to run a harvest.
    Accepts: JSON body with any HarvestConfig keys, e.g.
      {"project": "javascript-react-qa", "stats_period": "14d", "concurrency": 2}
      - 'write_reports': true|false (optional, default: true) also writes CSV files
    Returns: JSON with the report
    """
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        return jsonify({'error': 'Request body must be a JSON object'}), 400

    try:
        config = HarvestConfig.from_dict(data).validate()
        provider = make_session_provider()
        writer = ReportWriter(app.config['REPORT_DIR']) if data.get('write_reports', True) else None
        report = asyncio.run(_harvest(config, provider, writer))
        return jsonify(prepare_results(report))

    except (ConfigurationError, TypeError) as e:
        return jsonify({'error': str(e)}), 400
    except Exception as e:
        return jsonify({'error': str(e)}), 500


@app.route('/api/merge', methods=['POST'])
def merge_api():
    """
    API endpoint to merge JSON dumps of earlier runs.
    Accepts: multipart/form-data with one or more 'files' fields
      - 'precision': decimal places (optional, default: 3)
    Returns: JSON with merged backend and frontend rows
    """
    files = request.files.getlist('files')
    if not files:
        return jsonify({'error': 'No file provided'}), 400

    for file in files:
        if not file.filename:
            return jsonify({'error': 'No file selected'}), 400
        if not allowed_file(file.filename):
            return jsonify({'error': 'Invalid file type. Only JSON files are allowed.'}), 400

    try:
        precision = int(request.form.get('precision', 3))
    except ValueError:
        return jsonify({'error': 'precision must be an integer'}), 400

    try:
        aggregator = TraceAggregator()
        names = []
        for file in files:
            filename = secure_filename(file.filename)
            filepath = os.path.join(app.config['UPLOAD_FOLDER'], filename)
            file.save(filepath)
            try:
                DumpReader.merge_into(aggregator, filepath)
            finally:
                os.remove(filepath)
            names.append(filename)

        return jsonify(prepare_merge_results(aggregator.export(precision), names))

    except Exception as e:
        return jsonify({'error': str(e)}), 500


if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5001)
