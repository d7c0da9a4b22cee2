"""Tkinter-based UI for selecting a crop region on a video."""
from __future__ import annotations

import platform
import tempfile
import threading
import time
from pathlib import Path

import tkinter as tk
from tkinter import filedialog, messagebox, ttk
from PIL import Image, ImageTk
import vlc

from .config import Settings, load_settings
from .core import BoxGeometry, ContainerFrame, describe_video, native_resolution_from_metadata
from .errors import CropSelectorError, ExportFailure
from .ffmpeg_utils import FfmpegEncoder, extract_frame, probe_video
from .interaction import Handle, box_contains, hit_handle, pointer_from_event
from .logger import get_logger
from .session import SessionState
from .workflow import CropWorkflow, EncodedOutput, ExportRequest

_logger = get_logger("app")

OVERLAY_COLOR = "#00e5ff"
RESET_DELAY_MS = 3000


class CropSelectorApp:
    def __init__(self, root: tk.Tk, settings: Settings | None = None):
        self.root = root
        self.root.title("Crop Selector")
        self.settings = settings or load_settings()
        self.workflow = CropWorkflow(
            self._container_frame,
            self.settings,
            on_change=self._on_selection_changed,
        )
        self.metadata = None
        self.current_image: Image.Image | None = None
        self.photo_image: ImageTk.PhotoImage | None = None
        self.duration: float = 0.0
        self.timeline_var = tk.DoubleVar(value=0.0)
        self.is_playing = False
        self.playback_job: str | None = None
        self._playback_step = 0.5
        self._temp_dir = Path(tempfile.mkdtemp(prefix="crop_selector_"))
        # Suppress the on-video title overlay and reduce log noise.
        self.vlc_instance = vlc.Instance(
            "--no-video-title-show",
            "--quiet",
        )

        self.media_player: vlc.MediaPlayer | None = None
        self.video_panel: tk.Frame | None = None

        self._build_ui()

    # UI construction -----------------------------------------------------
    def _build_ui(self) -> None:
        container = ttk.Frame(self.root, padding=12)
        container.pack(fill=tk.BOTH, expand=True)

        top_bar = ttk.Frame(container)
        top_bar.pack(fill=tk.X, pady=(0, 10))
        ttk.Button(top_bar, text="Open Video", command=self._choose_video).pack(side=tk.LEFT)
        self.export_button = ttk.Button(top_bar, text="Crop & Export", command=self._export)
        self.export_button.pack(side=tk.LEFT, padx=6)
        self.export_button.state(["disabled"])
        ttk.Button(top_bar, text="Start Over", command=self._reset_session).pack(side=tk.LEFT)

        content = ttk.Frame(container)
        content.pack(fill=tk.BOTH, expand=True)

        left_panel = ttk.Frame(content)
        left_panel.pack(side=tk.LEFT, fill=tk.BOTH, expand=True)

        video_container = tk.Frame(
            left_panel,
            width=self.settings.canvas_width,
            height=self.settings.canvas_height,
            bg="#000000",
        )
        video_container.pack(fill=tk.BOTH, expand=True)

        # Render target for VLC; the canvas on top shows snapshots of it.
        self.video_panel = tk.Frame(video_container, bg="#000000")
        self.video_panel.pack(fill=tk.BOTH, expand=True)

        # The canvas is the container frame every selection coordinate is
        # relative to.
        self.canvas = tk.Canvas(video_container, highlightthickness=0, bd=0, bg="#000000")
        self.canvas.place(relx=0, rely=0, relwidth=1, relheight=1)
        self.canvas.bind("<ButtonPress-1>", self._on_press)
        self.canvas.bind("<B1-Motion>", self._on_drag)
        self.canvas.bind("<Configure>", lambda _event: self._draw_canvas())
        # A gesture ends wherever the button is released.
        self.root.bind_all("<ButtonRelease-1>", self._on_release, add="+")
        self.root.bind("<FocusOut>", self._on_cancel, add="+")
        self.root.bind("<Escape>", self._on_cancel, add="+")

        controls = ttk.Frame(left_panel)
        controls.pack(fill=tk.X, pady=(8, 0))
        self.play_button = ttk.Button(controls, text="Play", command=self._toggle_playback, width=10)
        self.play_button.pack(side=tk.LEFT, padx=(0, 8))
        self.timeline = ttk.Scale(
            controls,
            from_=0.0,
            to=0.0,
            orient=tk.HORIZONTAL,
            variable=self.timeline_var,
            command=self._on_seek,
        )
        self.timeline.pack(side=tk.LEFT, fill=tk.X, expand=True)
        self.time_label = ttk.Label(controls, text="0.0s / 0.0s")
        self.time_label.pack(side=tk.LEFT, padx=(8, 0))

        sidebar = ttk.Frame(content, width=280)
        sidebar.pack(side=tk.RIGHT, fill=tk.Y, padx=(12, 0))

        self.info_label = ttk.Label(sidebar, text="Load a video to start", wraplength=240, justify=tk.LEFT)
        self.info_label.pack(anchor=tk.W, pady=(0, 10))

        ttk.Label(sidebar, text="Crop in video pixels").pack(anchor=tk.W)
        coords_frame = ttk.Frame(sidebar)
        coords_frame.pack(anchor=tk.W, pady=(4, 8))
        self.x_var = tk.IntVar(value=0)
        self.y_var = tk.IntVar(value=0)
        self.w_var = tk.IntVar(value=0)
        self.h_var = tk.IntVar(value=0)
        for label, var in (("X", self.x_var), ("Y", self.y_var), ("W", self.w_var), ("H", self.h_var)):
            row = ttk.Frame(coords_frame)
            row.pack(anchor=tk.W)
            ttk.Label(row, text=f"{label}:", width=2).pack(side=tk.LEFT)
            ttk.Label(row, textvariable=var, width=10).pack(side=tk.LEFT, padx=(0, 10))

        self.status_label = ttk.Label(sidebar, text="", wraplength=240, justify=tk.LEFT)
        self.status_label.pack(anchor=tk.W, pady=(0, 6))

        self.log_box = tk.Text(sidebar, height=12, width=32, state=tk.DISABLED)
        self.log_box.pack(fill=tk.BOTH, expand=True, pady=(6, 0))

    # Geometry ------------------------------------------------------------
    def _container_frame(self) -> ContainerFrame:
        width = self.canvas.winfo_width() or self.settings.canvas_width
        height = self.canvas.winfo_height() or self.settings.canvas_height
        return ContainerFrame(float(width), float(height))

    def _on_selection_changed(self, _box: BoxGeometry) -> None:
        self._draw_canvas()

    # Event handlers ------------------------------------------------------
    def _choose_video(self) -> None:
        file_path = filedialog.askopenfilename(
            title="Select a video",
            filetypes=[
                ("Video files", ".mp4 .m4v .mov .mpg .mpeg .webm .mkv .3gp"),
                ("All files", "*.*"),
            ],
        )
        if not file_path:
            return
        self.open_video(Path(file_path))

    def open_video(self, video_path: Path) -> None:
        try:
            self.metadata = probe_video(video_path)
            native = native_resolution_from_metadata(self.metadata)
            self.workflow.load_source(video_path, native)
            self._load_media_player()
            self._update_info()
            self._load_frame_at(0.0)
        except (CropSelectorError, RuntimeError, OSError) as exc:
            _logger.exception("could not open %s", video_path)
            messagebox.showerror("Error", str(exc))
            self._log(str(exc))
            return
        self._set_status("Video loaded. Drag the box to crop.")
        self._sync_export_button()

    def _on_press(self, event) -> None:
        if self.workflow.state is not SessionState.EDITABLE:
            return
        point = pointer_from_event(event)
        box = self.workflow.selection_box()
        handle: Handle | None = hit_handle(box, point.x, point.y, self.settings.handle_size)
        if handle is None and not box_contains(box, point.x, point.y):
            return
        self.workflow.controller.pointer_down(point, handle)

    def _on_drag(self, event) -> None:
        self.workflow.controller.pointer_move(pointer_from_event(event))

    def _on_release(self, _event) -> None:
        self.workflow.controller.pointer_up()

    def _on_cancel(self, _event) -> None:
        self.workflow.controller.pointer_cancel()

    # Export --------------------------------------------------------------
    def _export(self) -> None:
        try:
            request = self.workflow.begin_export()
        except CropSelectorError as exc:
            self._set_status(str(exc))
            self._log(str(exc))
            return

        self._sync_export_button()
        self._set_status("Processing crop…")
        encoder = FfmpegEncoder(
            self.settings.output_dir,
            video_codec=self.settings.video_codec,
            audio_codec=self.settings.audio_codec,
            progress_callback=lambda msg: self.root.after(0, self._log, msg),
        )
        thread = threading.Thread(
            target=self._run_export,
            args=(encoder, request),
            daemon=True,
        )
        thread.start()

    def _run_export(self, encoder: FfmpegEncoder, request: ExportRequest) -> None:
        try:
            output = self.workflow.run_encoder(encoder, request)
        except ExportFailure as exc:
            self.root.after(0, self._on_export_failed, exc)
            return
        self.root.after(0, self._on_export_done, output)

    def _on_export_done(self, output: EncodedOutput) -> None:
        self.workflow.finish_export(output)
        self._sync_export_button()
        self._log(f"Saved {output.filename}")
        self._set_status("Crop complete! Starting over in 3 seconds…")
        messagebox.showinfo("Done", f"Saved cropped video to {output.path}")
        self.root.after(RESET_DELAY_MS, self._reset_if_locked)

    def _on_export_failed(self, exc: ExportFailure) -> None:
        self.workflow.fail_export(exc)
        self._sync_export_button()
        self._set_status(f"Processing failed: {exc.message}")
        self._log(exc.message)
        messagebox.showerror("Error", exc.message)

    def _reset_if_locked(self) -> None:
        if self.workflow.state is SessionState.LOCKED:
            self._reset_session()

    def _reset_session(self) -> None:
        if self.workflow.export_in_flight:
            return
        self._stop_playback()
        if self.media_player:
            self.media_player.stop()
            self.media_player = None
        self.workflow.reset()
        self.metadata = None
        self.current_image = None
        self.duration = 0.0
        self.info_label.config(text="Load a video to start")
        self._set_status("")
        self._sync_export_button()
        self._draw_canvas()

    def _sync_export_button(self) -> None:
        self.export_button.state(["!disabled"] if self.workflow.can_export else ["disabled"])

    # Rendering -----------------------------------------------------------
    def _update_info(self) -> None:
        if not self.metadata or not self.workflow.source:
            return
        msg, duration = describe_video(self.workflow.source, self.metadata)
        self.duration = duration
        self.info_label.config(text=msg)
        self.timeline.configure(to=max(duration, 0.01))
        self.timeline_var.set(0.0)
        self._update_time_label(0.0)

    def _draw_canvas(self) -> None:
        self.canvas.delete("all")
        display = self.workflow.display_rect()
        if not self.current_image or not display.is_ready:
            return

        size = (max(1, round(display.width)), max(1, round(display.height)))
        resized = self.current_image.resize(size, Image.Resampling.LANCZOS)
        self.photo_image = ImageTk.PhotoImage(resized)
        self.canvas.create_image(display.offset_x, display.offset_y, anchor=tk.NW, image=self.photo_image)

        box = self.workflow.selection_box()
        self.canvas.create_rectangle(box.x, box.y, box.right, box.bottom, outline=OVERLAY_COLOR, width=2)
        half = self.settings.handle_size / 2
        for handle in Handle:
            cx, cy = handle.corner(box)
            self.canvas.create_rectangle(
                cx - half, cy - half, cx + half, cy + half, fill="white", outline="black"
            )
        self._sync_vars(box)

    def _sync_vars(self, box: BoxGeometry) -> None:
        crop = self.workflow.crop_rect()
        self.x_var.set(crop.x)
        self.y_var.set(crop.y)
        self.w_var.set(crop.width)
        self.h_var.set(crop.height)
        self.canvas.create_text(
            box.x + 8, box.y + 12, anchor=tk.W, text=f"{crop.width}x{crop.height}", fill="white"
        )

    def _set_status(self, text: str) -> None:
        self.status_label.config(text=text)

    def _log(self, text: str) -> None:
        _logger.info(text)
        self.log_box.configure(state=tk.NORMAL)
        self.log_box.insert(tk.END, text + "\n")
        self.log_box.configure(state=tk.DISABLED)
        self.log_box.see(tk.END)

    # Playback ------------------------------------------------------------
    def _load_frame_at(self, timestamp: float) -> None:
        source = self.workflow.source
        if not source:
            return
        preview_path = self._temp_dir / "preview.png"
        if not self._capture_vlc_snapshot(preview_path, timestamp=timestamp):
            extract_frame(source, preview_path, timestamp=timestamp)
            self.current_image = Image.open(preview_path).convert("RGB")
        self._draw_canvas()

    def _update_time_label(self, current: float) -> None:
        self.time_label.config(text=f"{current:.1f}s / {self.duration:.1f}s")

    def _on_seek(self, value: str) -> None:
        if not self.workflow.source:
            return
        timestamp = float(value)
        self._update_time_label(timestamp)
        if self.is_playing and self.media_player:
            self.media_player.set_time(int(timestamp * 1000))
        self._load_frame_at(timestamp)

    def _toggle_playback(self) -> None:
        if not self.workflow.source or self.duration == 0:
            messagebox.showinfo("Select a video", "Please open a video before playing.")
            return
        if self.is_playing:
            self._stop_playback()
        else:
            if self.media_player:
                self.media_player.set_time(int(self.timeline_var.get() * 1000))
                self.media_player.play()
            self.is_playing = True
            self.play_button.config(text="Pause")
            self._poll_playback()

    def _stop_playback(self) -> None:
        self.is_playing = False
        self.play_button.config(text="Play")
        if self.media_player:
            self.media_player.pause()
        if self.playback_job:
            self.root.after_cancel(self.playback_job)
            self.playback_job = None

    def _poll_playback(self) -> None:
        if not self.is_playing or not self.media_player:
            return

        current_ms = self.media_player.get_time()
        if current_ms >= 0:
            current = current_ms / 1000
            self.timeline_var.set(current)
            self._update_time_label(current)
            self._capture_vlc_snapshot(self._temp_dir / "preview.png")
            self._draw_canvas()

            if current >= self.duration - 0.05:
                self._stop_playback()
                self.timeline_var.set(self.duration)
                self._update_time_label(self.duration)
                return

        state = self.media_player.get_state()
        if state in (vlc.State.Ended, vlc.State.Error):
            self._stop_playback()
            return

        self.playback_job = self.root.after(int(self._playback_step * 1000), self._poll_playback)

    def _set_media_player_window(self) -> None:
        """Attach VLC video output to an in-app widget instead of a new window."""
        if not self.media_player or not self.video_panel:
            return

        self.root.update_idletasks()
        handle = self.video_panel.winfo_id()
        system = platform.system()
        if system == "Windows":
            self.media_player.set_hwnd(handle)
        elif system == "Linux":
            # On X11, winfo_id() returns the XID.
            self.media_player.set_xwindow(handle)
        elif system == "Darwin":
            self.media_player.set_nsobject(handle)

    def _load_media_player(self) -> None:
        if self.media_player:
            self.media_player.stop()
        self.media_player = self.vlc_instance.media_player_new()
        self._set_media_player_window()
        media = self.vlc_instance.media_new(str(self.workflow.source))
        self.media_player.set_media(media)
        self.media_player.play()
        time.sleep(0.1)
        self.media_player.pause()

    def _capture_vlc_snapshot(self, output_path: Path, *, timestamp: float | None = None) -> bool:
        if not self.media_player:
            return False
        if timestamp is not None:
            self.media_player.set_time(int(timestamp * 1000))
            self.media_player.pause()
            time.sleep(0.05)
        if self.media_player.video_take_snapshot(0, str(output_path), 0, 0) != 0:
            return False
        try:
            self.current_image = Image.open(output_path).convert("RGB")
        except OSError:
            _logger.debug("vlc snapshot unreadable, falling back to ffmpeg")
            return False
        return True


def run(video: Path | None = None, settings: Settings | None = None) -> None:
    root = tk.Tk()
    style = ttk.Style(root)
    style.theme_use("clam")
    style.configure("TFrame", background="#111")
    style.configure("TLabel", background="#111", foreground="#f5f5f5")
    style.configure("TButton", padding=6)
    app = CropSelectorApp(root, settings)
    root.geometry("1200x640")
    if video is not None:
        root.after(100, app.open_video, video)
    root.mainloop()


if __name__ == "__main__":
    run()
