"""HTML for the upload form served at ``/``."""

from __future__ import annotations

from string import Template

_PAGE = Template("""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Tempdrop</title>
  <style>
    body { font-family: system-ui, sans-serif; background: #f3f4f6; display: flex; align-items: center; justify-content: center; min-height: 100vh; margin: 0; }
    main { background: #fff; padding: 2rem; border-radius: 1rem; box-shadow: 0 10px 30px rgba(0,0,0,.1); max-width: 28rem; width: 100%; }
    h1 { margin-top: 0; }
    button { margin-top: 1rem; padding: .6rem 1.2rem; border: 0; border-radius: .5rem; background: #2563eb; color: #fff; cursor: pointer; }
    button:disabled { background: #9ca3af; }
    #result { margin-top: 1.5rem; display: none; }
    #shareUrl { width: 100%; padding: .5rem; }
    #error { color: #b91c1c; margin-top: 1rem; }
  </style>
</head>
<body>
  <main>
    <h1>Share a file temporarily</h1>
    <p>Upload a file and get a link. The link expires in <strong>$ttl</strong>.</p>
    <form id="uploadForm">
      <input type="file" id="fileInput" name="file" required>
      <button type="submit" id="uploadButton">Upload</button>
    </form>
    <p id="error"></p>
    <div id="result">
      <label for="shareUrl">Your link:</label>
      <input type="text" id="shareUrl" readonly>
    </div>
  </main>
  <script>
    const form = document.getElementById('uploadForm');
    const fileInput = document.getElementById('fileInput');
    const button = document.getElementById('uploadButton');
    const errorBox = document.getElementById('error');
    form.addEventListener('submit', async (e) => {
      e.preventDefault();
      errorBox.textContent = '';
      if (!fileInput.files.length) {
        errorBox.textContent = 'Please select a file to upload.';
        return;
      }
      const data = new FormData();
      data.append('file', fileInput.files[0]);
      button.disabled = true;
      button.textContent = 'Uploading...';
      try {
        const response = await fetch('/upload', { method: 'POST', body: data });
        const payload = await response.json();
        if (!response.ok || !payload.success) {
          throw new Error(payload.message || 'Upload failed.');
        }
        document.getElementById('shareUrl').value = payload.url;
        document.getElementById('result').style.display = 'block';
      } catch (err) {
        errorBox.textContent = err.message;
      } finally {
        button.disabled = false;
        button.textContent = 'Upload';
      }
    });
  </script>
</body>
</html>
""")


def describe_ttl(seconds: int) -> str:
    if seconds % 3600 == 0:
        hours = seconds // 3600
        return f"{hours} hour" + ("" if hours == 1 else "s")
    if seconds % 60 == 0:
        minutes = seconds // 60
        return f"{minutes} minute" + ("" if minutes == 1 else "s")
    return f"{seconds} seconds"


def render_upload_page(ttl_seconds: int) -> str:
    return _PAGE.substitute(ttl=describe_ttl(ttl_seconds))
