"""
Web Application - PalmGuru

使用 Flask 提供 Web 界面和 RESTful API
"""
import atexit
import time
import threading
from typing import Optional

from flask import Flask, render_template, jsonify, request, Response, stream_with_context
from flask_cors import CORS

from palmguru.ai import create_ai_service, reset_ai_service, AIConfig, PalmAnalyzer
from palmguru.common import Config, Logger
from palmguru.reading import ReadingController
from palmguru.vision import (
    CameraDevice,
    ImageInputController,
    ImageInputConfig,
    ImageInputError,
    InputState,
    decode_data_url,
    split_data_url
)


# 创建 Flask 应用
app = Flask(__name__,
            template_folder='templates')
CORS(app)

# 全局变量
services = {}
services_lock = threading.Lock()
logger = Logger(None)


class ClipboardError(Exception):
    """浏览器报告剪贴板写入失败"""


def init_services(config: Optional[Config] = None,
                  camera: Optional[CameraDevice] = None,
                  analyzer: Optional[PalmAnalyzer] = None) -> ReadingController:
    """初始化所有服务（只执行一次）

    Args:
        config: 全局配置，默认从环境变量加载
        camera: 摄像头设备，默认按配置创建
        analyzer: 手相分析器，默认由 AIService 创建

    Returns:
        ReadingController 实例
    """
    global logger

    with services_lock:
        if "reading" in services:
            return services["reading"]

        config = config or Config()
        log_dir = str(config.log_dir)
        logger = Logger(log_dir)

        # 1. AI 服务
        ai_config = AIConfig(
            api_key=config.gemini.api_key,
            base_url=config.gemini.base_url,
            vision_model=config.gemini.model,
            max_output_tokens=config.gemini.max_output_tokens,
            timeout=config.gemini.timeout,
            log_dir=log_dir
        )
        ai_service = create_ai_service(ai_config)
        if analyzer is None:
            analyzer = ai_service.palm()

        # 2. 图片获取
        if camera is None:
            camera = CameraDevice(config.camera, log_dir=log_dir)
        image_input = ImageInputController(
            camera,
            ImageInputConfig(jpeg_quality=config.camera.quality, log_dir=log_dir)
        )

        # 3. 解读控制器
        reading = ReadingController(
            image_input,
            analyzer,
            copy_feedback_seconds=config.web.copy_feedback_seconds,
            log_dir=log_dir
        )

        # 启动时尝试打开摄像头
        image_input.mount()

        services.update({
            "config": config,
            "ai": ai_service,
            "input": image_input,
            "reading": reading
        })

        logger.log("web", "info", "服务初始化完成")
        return reading


def shutdown_services():
    """释放摄像头并清空服务（包括 AI 服务，下次初始化时重新读取配置）"""
    with services_lock:
        image_input = services.get("input")
        if image_input is not None:
            image_input.unmount()
        services.clear()
        reset_ai_service()


def _ok(message: Optional[str] = None, status: int = 200, **extra):
    body = {"success": True}
    if message:
        body["message"] = message
    body.update(extra)
    return jsonify(body), status


def _fail(message: str, status: int = 400):
    return jsonify({
        "success": False,
        "message": message
    }), status


def _status_payload(reading: ReadingController) -> dict:
    return {
        "reading": reading.get_status(),
        "input": reading.image_input.get_status(),
        "ai": services["ai"].get_status()
    }


# ==================== 页面路由 ====================

@app.route('/')
def index():
    """主页"""
    init_services()
    return render_template('index.html')


# ==================== API 接口 ====================

@app.route('/api/status', methods=['GET'])
def get_status():
    """获取系统状态"""
    reading = init_services()
    return _ok(data=_status_payload(reading))


@app.route('/api/image', methods=['GET'])
def get_image():
    """当前图片（拍照或上传），没有图片时返回 404"""
    reading = init_services()
    image = reading.snapshot().captured_image
    if image is None:
        return _fail("No image available.", 404)

    mime, _ = split_data_url(image)
    response = Response(decode_data_url(image), mimetype=mime)
    response.headers['Cache-Control'] = 'no-store'
    return response


@app.route('/api/camera/capture', methods=['POST'])
def capture():
    """拍照"""
    reading = init_services()

    try:
        reading.image_input.capture()
    except ImageInputError as e:
        return _fail(str(e))

    return _ok("Photo captured", data=_status_payload(reading))


@app.route('/api/camera/retake', methods=['POST'])
def retake():
    """重拍（重新打开摄像头）"""
    reading = init_services()
    state = reading.image_input.retake()

    return _ok(data={**_status_payload(reading), "camera_state": state})


@app.route('/api/upload', methods=['POST'])
def upload():
    """上传图片

    Body: multipart/form-data，字段名 file
    """
    reading = init_services()

    file = request.files.get('file')
    if file is None or not file.filename:
        return _fail("No file selected.")

    try:
        data_url = reading.image_input.select_file(file.stream, file.mimetype)
    except ImageInputError as e:
        return _fail(str(e))

    if data_url is None:
        return _ok("Upload superseded by a newer selection", data=_status_payload(reading))
    return _ok("Image uploaded", data=_status_payload(reading))


@app.route('/api/analyze', methods=['POST'])
def analyze():
    """开始分析（后台线程），前端轮询 /api/status 获取结果"""
    reading = init_services()

    if not reading.start_analysis():
        return _fail(reading.snapshot().error or "Analysis could not be started.")

    return _ok("Analysis started", status=202, data=_status_payload(reading))


@app.route('/api/start_over', methods=['POST'])
def start_over():
    """重新开始"""
    reading = init_services()
    reading.start_over()

    return _ok(data=_status_payload(reading))


@app.route('/api/copy', methods=['POST'])
def copy_result():
    """记录浏览器剪贴板写入的结果

    Body: JSON 格式
    {
        "success": true
    }
    """
    reading = init_services()
    data = request.get_json(silent=True) or {}
    reported = bool(data.get('success', False))

    def write_text(text: str):
        if not reported:
            raise ClipboardError("browser clipboard write failed")

    if reading.snapshot().analysis_result is None:
        return _fail("There is no analysis to copy.")

    reading.copy_result(write_text)
    return _ok(data=_status_payload(reading))


# ==================== 预览视频流 ====================

def generate_preview_frames(reading: ReadingController):
    """生成预览视频帧（MJPEG 流），摄像头离开 camera_active 时结束"""
    image_input = reading.image_input
    frame_count = 0

    while image_input.state == InputState.CAMERA_ACTIVE:
        frame_bytes = image_input.read_preview_jpeg()
        if frame_bytes is None:
            time.sleep(0.5)
            continue

        frame_count += 1
        if frame_count % 100 == 0:
            logger.log("web", "info", f"预览已发送 {frame_count} 帧")

        yield (b'--frame\r\n'
               b'Content-Type: image/jpeg\r\n\r\n' + frame_bytes + b'\r\n')

        # 控制帧率（约 10 FPS）
        time.sleep(0.1)


@app.route('/video_feed')
def video_feed():
    """视频流端点（仅摄像头激活时可用）"""
    reading = init_services()

    if reading.image_input.state != InputState.CAMERA_ACTIVE:
        return Response(status=403, response="Camera is not active")

    return Response(stream_with_context(generate_preview_frames(reading)),
                    mimetype='multipart/x-mixed-replace; boundary=frame')


# ==================== 错误处理 ====================

@app.errorhandler(404)
def not_found(error):
    return _fail("Not found", 404)


@app.errorhandler(500)
def internal_error(error):
    return _fail("Internal server error", 500)


# ==================== 启动命令 ====================

def main():
    """启动 Web 服务"""
    init_services()
    atexit.register(shutdown_services)

    web_config = services["config"].web
    app.run(host=web_config.host, port=web_config.port, threaded=True)


if __name__ == '__main__':
    main()
