#!/usr/bin/env python3
"""
ID Card Studio — desktop photo editor and print export

Dependencies:
    pip install ttkbootstrap pillow opencv-python reportlab requests
"""
import os
import sys
import logging
import subprocess
import tkinter as tk
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from tkinter import filedialog, messagebox

import ttkbootstrap as ttk
from ttkbootstrap.constants import *
from PIL import ImageTk

from id_card_studio.background import BackgroundRemover, remove_background_or_original
from id_card_studio.card import BranchInfo, Branding, EmployeeRecord, build_back_face, build_front_face
from id_card_studio.compositor import PreviewCompositor
from id_card_studio.config import StudioConfig
from id_card_studio.document import write_file
from id_card_studio.errors import ExportError, IdCardStudioError, InputError
from id_card_studio.geometry import grid_lines
from id_card_studio.photo import load_photo
from id_card_studio.pipeline import ExportPipeline
from id_card_studio.snapshot import CardSnapshotter
from id_card_studio.transform import CoordinateEngine

logger = logging.getLogger(__name__)

PREVIEW_SCALE = 1.5
BLOOD_GROUPS = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]
COUNTRY_CODES = ["+91", "+1", "+44"]
POLL_MS = 100
GRID_COLOR = "#f97316"


def open_path(path):
    if os.name == "nt":
        os.startfile(path)
    elif sys.platform == "darwin":
        subprocess.Popen(["open", path])
    else:
        subprocess.Popen(["xdg-open", path])


# ----------------------------
# Main application
# ----------------------------
class IDCardStudioApp:
    def __init__(self, root, config: StudioConfig = None, branding: Branding = None):
        self.root = root
        self.root.title("ID Card Studio — Photo Editor & Print Export")
        self.root.geometry("1100x820")
        self.root.minsize(900, 700)

        self.config = replace(config or StudioConfig.from_env(), preview_scale=PREVIEW_SCALE)
        self.branding = branding or Branding(branches={
            "HYD": BranchInfo("HYD"),
            "VIZAG": BranchInfo("VIZAG"),
        })

        # Editing session: one engine, one preview compositor
        self.engine = CoordinateEngine(config=self.config)
        self.preview = PreviewCompositor(self.config.photo_frame, self.config.preview_box_size,
                                         self.config.background)
        preview_dpi = self.config.units_per_inch * PREVIEW_SCALE
        self.face_preview = CardSnapshotter(replace(self.config, dpi=preview_dpi))
        self.pipeline = ExportPipeline(self.config)
        self.remover = None
        if self.config.background_removal_enabled:
            self.remover = BackgroundRemover.from_config(self.config)
        self.executor = ThreadPoolExecutor(max_workers=1)

        # Record fields
        self.full_name = tk.StringVar()
        self.employee_id = tk.StringVar()
        self.blood_group = tk.StringVar()
        self.branch = tk.StringVar(value=next(iter(self.branding.branches), ""))
        self.country_code = tk.StringVar(value="+91")
        self.emergency_contact = tk.StringVar()
        self.remove_bg_var = tk.BooleanVar(value=self.remover is not None)

        self.status_text = tk.StringVar(value="Ready")
        self.output_folder = None
        self._redraw_pending = False
        self._front_tk = None
        self._back_tk = None

        self._build_ui()
        for var in (self.full_name, self.employee_id, self.blood_group, self.branch,
                    self.country_code, self.emergency_contact):
            var.trace_add("write", lambda *_: self.schedule_redraw())
        self.root.protocol("WM_DELETE_WINDOW", self.close)
        self.schedule_redraw()

    def _build_ui(self):
        header = ttk.Frame(self.root, padding=10)
        header.pack(fill=X)
        ttk.Label(header, text="🆔 ID Card Studio", font=("Helvetica", 20, "bold")).pack()
        status_frame = ttk.Frame(header)
        status_frame.pack(fill=X, pady=5)
        ttk.Label(status_frame, text="Status:", font=("Helvetica", 9, "bold")).pack(side=LEFT)
        ttk.Label(status_frame, textvariable=self.status_text, font=("Helvetica", 9)).pack(side=LEFT, padx=(5, 0))
        ttk.Separator(self.root, orient=HORIZONTAL).pack(fill=X, pady=5)

        body = ttk.Frame(self.root, padding=15)
        body.pack(fill=BOTH, expand=True)

        # Record form
        form = ttk.Labelframe(body, text="👤 Employee Details", padding=15)
        form.pack(side=LEFT, fill=Y, padx=(0, 10))
        rows = [
            ("Full name:", ttk.Entry(form, textvariable=self.full_name, width=26)),
            ("Employee ID:", ttk.Entry(form, textvariable=self.employee_id, width=26)),
            ("Blood group:", ttk.Combobox(form, textvariable=self.blood_group, values=BLOOD_GROUPS,
                                          width=24, state="readonly")),
            ("Branch:", ttk.Combobox(form, textvariable=self.branch, values=list(self.branding.branches),
                                     width=24, state="readonly")),
            ("Country code:", ttk.Combobox(form, textvariable=self.country_code, values=COUNTRY_CODES, width=24)),
            ("Emergency no:", ttk.Entry(form, textvariable=self.emergency_contact, width=26)),
        ]
        for i, (label, widget) in enumerate(rows):
            ttk.Label(form, text=label).grid(row=i, column=0, sticky="e", padx=(0, 5), pady=3)
            widget.grid(row=i, column=1, sticky="w", pady=3)

        photo_frame = ttk.Frame(form)
        photo_frame.grid(row=len(rows), column=0, columnspan=2, sticky="ew", pady=(15, 0))
        ttk.Button(photo_frame, text="📂 Select Photo", bootstyle=PRIMARY,
                   command=self.select_photo).pack(fill=X, pady=2)
        check = ttk.Checkbutton(photo_frame, text="✂️ Remove background", variable=self.remove_bg_var)
        check.pack(anchor="w", pady=2)
        if self.remover is None:
            check.configure(state="disabled")

        # Card previews
        preview = ttk.Labelframe(body, text="📋 Card Preview (drag the photo to position it)", padding=15)
        preview.pack(side=LEFT, fill=BOTH, expand=True)
        cards = ttk.Frame(preview)
        cards.pack(fill=BOTH, expand=True)
        w, h = self.face_preview.canvas_size(build_front_face(self._record(), Branding(), self.config))
        self.front_canvas = tk.Canvas(cards, width=w, height=h, background="white", highlightthickness=1)
        self.front_canvas.pack(side=LEFT, padx=10)
        self.front_canvas.bind("<ButtonPress-1>", self._on_press)
        self.front_canvas.bind("<B1-Motion>", self._on_drag)
        self.front_canvas.bind("<ButtonRelease-1>", self._on_release)
        self.front_canvas.bind("<Leave>", self._on_release)
        self.front_canvas.bind("<MouseWheel>", self._on_wheel)
        self.back_label = ttk.Label(cards, background="white")
        self.back_label.pack(side=LEFT, padx=10)

        controls = ttk.Frame(preview, padding=(0, 10, 0, 0))
        controls.pack(fill=X)
        for text, command in [
            ("➕ Zoom In", self.engine.zoom_in),
            ("➖ Zoom Out", self.engine.zoom_out),
            ("↺ Rotate Left", self.engine.rotate_left),
            ("↻ Rotate Right", self.engine.rotate_right),
            ("🎯 Center", self.engine.snap_to_center),
            ("▦ Grid", self.engine.toggle_grid),
            ("🔄 Reset", self.engine.reset_transform),
        ]:
            ttk.Button(controls, text=text, bootstyle=INFO,
                       command=lambda c=command: self._apply(c)).pack(side=LEFT, padx=2)

        # Actions
        ttk.Separator(self.root, orient=HORIZONTAL).pack(fill=X, pady=5)
        actions = ttk.Frame(self.root, padding=15)
        actions.pack(fill=X)
        self.progress_bar = ttk.Progressbar(actions, mode="indeterminate")
        button_frame = ttk.Frame(actions)
        button_frame.pack(fill=X)
        ttk.Button(button_frame, text="📦 Download ZIP", bootstyle=SUCCESS,
                   command=lambda: self.export("zip"), width=18).pack(side=LEFT, padx=(0, 10))
        ttk.Button(button_frame, text="🖨️ Save PDF for Printing", bootstyle=SUCCESS,
                   command=lambda: self.export("pdf"), width=22).pack(side=LEFT, padx=5)
        ttk.Button(button_frame, text="📁 Open Output Folder", bootstyle=INFO,
                   command=self.open_output_folder, width=18).pack(side=LEFT, padx=5)
        ttk.Button(button_frame, text="❌ Exit", bootstyle=SECONDARY,
                   command=self.close, width=10).pack(side=RIGHT)

    # -------------------------
    # Record + faces
    # -------------------------
    def _record(self) -> EmployeeRecord:
        return EmployeeRecord(
            full_name=self.full_name.get().strip(),
            employee_id=self.employee_id.get().strip(),
            blood_group=self.blood_group.get(),
            branch=self.branch.get(),
            emergency_contact=self.emergency_contact.get().strip(),
            country_code=self.country_code.get().strip(),
        )

    def _faces(self, record):
        return (build_front_face(record, self.branding, self.config),
                build_back_face(record, self.branding, self.config))

    # -------------------------
    # Photo loading
    # -------------------------
    def select_photo(self):
        path = filedialog.askopenfilename(
            title="Select Photo",
            filetypes=[("Image Files", "*.jpg;*.jpeg;*.png"), ("All Files", "*.*")],
        )
        if not path:
            return
        try:
            photo = load_photo(path, self.config)
        except InputError as e:
            messagebox.showerror("Photo Error", str(e))
            return

        if not self.remove_bg_var.get():
            self._accept_photo(photo.image, None)
            return
        self.status_text.set("Removing background...")
        future = self.executor.submit(remove_background_or_original, photo, self.remover)
        self._poll(future, lambda result: self._accept_photo(result.photo.image, result.warning),
                   "Background removal")

    def _accept_photo(self, image, warning):
        self.engine.load_image(image)
        self.schedule_redraw()
        if warning:
            self.status_text.set(warning)
            messagebox.showwarning("Background Removal", warning)
        else:
            self.status_text.set("Photo loaded — drag to position, use the controls to zoom/rotate")

    # -------------------------
    # Interaction
    # -------------------------
    def _photo_box_screen(self):
        x, y, w, h = self.config.photo_box
        s = self.face_preview.scale
        return x * s, y * s, w * s, h * s

    def _in_photo_box(self, event):
        x, y, w, h = self._photo_box_screen()
        return x <= event.x <= x + w and y <= event.y <= y + h

    def _on_press(self, event):
        if self._in_photo_box(event):
            self.engine.begin_drag((event.x, event.y))

    def _on_drag(self, event):
        if not self.engine.is_dragging:
            return
        self.engine.continue_drag((event.x, event.y), visible_box_width=self._photo_box_screen()[2])
        self.schedule_redraw()

    def _on_release(self, event=None):
        self.engine.end_drag()

    def _on_wheel(self, event):
        self._apply(self.engine.zoom_in if event.delta > 0 else self.engine.zoom_out)

    def _apply(self, command):
        command()
        self.schedule_redraw()

    # -------------------------
    # Rendering
    # -------------------------
    def schedule_redraw(self):
        if not self._redraw_pending:
            self._redraw_pending = True
            self.root.after_idle(self.redraw)

    def redraw(self):
        self._redraw_pending = False
        record = self._record()
        front, back = self._faces(record)
        photo = None
        if self.engine.state.has_image:
            photo = self.preview.render(self.engine.state)
        try:
            front_img = self.face_preview.snapshot(front, photo)
            back_img = self.face_preview.snapshot(back)
        except ExportError as e:
            self.status_text.set(f"Preview error: {e.reason}")
            return
        self._front_tk = ImageTk.PhotoImage(front_img)
        self._back_tk = ImageTk.PhotoImage(back_img)
        self.front_canvas.delete("all")
        self.front_canvas.create_image(0, 0, image=self._front_tk, anchor="nw")
        if self.engine.show_grid:
            for line in grid_lines(self._photo_box_screen()):
                self.front_canvas.create_line(*line, fill=GRID_COLOR, dash=(4, 2), tags="grid")
        self.back_label.configure(image=self._back_tk)

    # -------------------------
    # Export
    # -------------------------
    def export(self, kind):
        record = self._record()
        front, back = self._faces(record)
        try:
            future = self.pipeline.submit(self.executor, self.engine.state, front, back, record)
        except IdCardStudioError as e:
            messagebox.showerror("Export", str(e))
            return
        self.status_text.set("Generating print files...")
        self.progress_bar.pack(fill=X, pady=(10, 0))
        self.progress_bar.start()
        self._poll(future, lambda artifact: self._save_artifact(artifact, kind), "Export")

    def _save_artifact(self, artifact, kind):
        if kind == "pdf":
            path = filedialog.asksaveasfilename(title="Save PDF", defaultextension=".pdf",
                                                initialfile=artifact.pdf_name,
                                                filetypes=[("PDF Files", "*.pdf")])
            data = artifact.pdf_bytes
        else:
            path = filedialog.asksaveasfilename(title="Save ZIP", defaultextension=".zip",
                                                initialfile=artifact.archive_name,
                                                filetypes=[("ZIP Files", "*.zip")])
            data = artifact.archive_bytes
        if not path:
            self.status_text.set("Export cancelled")
            return
        try:
            write_file(path, data)
        except IdCardStudioError as e:
            self.status_text.set("Error saving file")
            messagebox.showerror("Save Error", f"Failed to save the export:\n\n{e}")
            return
        self.output_folder = os.path.dirname(path)
        self.status_text.set(f"Saved {os.path.basename(path)}")
        if kind == "pdf":
            open_path(path)
        else:
            messagebox.showinfo("✅ Export Complete!",
                                f"ID card files created successfully!\n\n"
                                f"📄 {artifact.pdf_name}\n"
                                f"🖼️ {artifact.front_name}\n"
                                f"🖼️ {artifact.back_name}\n\n"
                                f"📁 Location: {self.output_folder}")

    def _poll(self, future, on_success, what):
        """Check a background job from the Tk loop; never block the UI thread."""
        if not future.done():
            self.root.after(POLL_MS, lambda: self._poll(future, on_success, what))
            return
        self.progress_bar.stop()
        self.progress_bar.pack_forget()
        try:
            result = future.result()
        except IdCardStudioError as e:
            logger.error("%s failed: %s", what, e)
            self.status_text.set(f"{what} failed")
            messagebox.showerror(f"{what} Error", str(e))
            return
        on_success(result)

    def open_output_folder(self):
        if self.output_folder and os.path.exists(self.output_folder):
            open_path(self.output_folder)
        else:
            messagebox.showinfo("No Output Folder", "Export a card first to create an output folder.")

    def close(self):
        self.executor.shutdown(wait=False)
        self.root.destroy()


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    app = ttk.Window(themename="flatly")
    IDCardStudioApp(app)
    app.mainloop()


if __name__ == "__main__":
    main()
