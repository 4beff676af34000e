"""Prompt Import Toolkit - Streamlit web interface."""

import json

import ollama
import streamlit as st

import config
import history
import templates
from extractors import check_js_rendered, extract_file_text, fetch_url_text, is_url
from json_extract import JsonExtractionError, extract_strict_json, parse_strict_json
from main import METHODS, import_prompt
from prompt_parser import FIELD_NAMES, FieldPattern, PromptDocument, pad_example_prompts
from prompts import delete_prompt, list_prompts, load_prompt, prompt_exists, save_prompt, slugify

AUTO = "Auto (regex -> template -> AI)"
NO_TEMPLATE = "(match by source)"
SOURCE_KEYS = {"Paste": "paste", "File": "file", "URL": "url"}

st.set_page_config(page_title="Prompt Import Toolkit", layout="wide")

try:
    config.validate()
except ValueError as e:
    st.error(f"Configuration error: {e}")
    st.stop()

# Session state defaults
for key, default in [
    ("edit_title", ""),
    ("edit_summary", ""),
    ("edit_examples", ["", "", ""]),
    ("edit_code", ""),
    ("last_result", None),
    ("status_log", []),
]:
    if key not in st.session_state:
        st.session_state[key] = default

# Toasts for library save/delete confirmation
if st.session_state.pop("_show_save_toast", False):
    st.toast("Prompt saved to library!")
if st.session_state.pop("_show_delete_toast", False):
    st.toast("Prompt deleted.")

# Deferred tab switches (must happen before the radio widget is instantiated)
if st.session_state.pop("_switch_to_import", False):
    st.session_state.active_tab = "Import"

tab_options = ["Import", "Library", "Templates", "History", "JSON", "Status"]

if st.session_state.get("active_tab") not in tab_options:
    st.session_state.active_tab = "Import"

st.title("Prompt Import Toolkit")

tab = st.radio(
    "View",
    tab_options,
    horizontal=True,
    label_visibility="collapsed",
    key="active_tab",
)


def _load_into_editor(doc: PromptDocument):
    """Copy parsed fields into the editor, padding example prompts to three."""
    st.session_state.edit_title = doc.title
    st.session_state.edit_summary = doc.summary
    st.session_state.edit_examples = pad_example_prompts(doc.example_prompts)
    st.session_state.edit_code = doc.prompt_code
    # Drop every example widget, including rows past the new list length
    for key in [k for k in st.session_state if k.startswith("example_")]:
        st.session_state.pop(key, None)
    for key in ("title_input", "summary_input", "code_input"):
        st.session_state.pop(key, None)


def _editor_document() -> PromptDocument:
    return PromptDocument(
        title=st.session_state.get("title_input", st.session_state.edit_title).strip(),
        summary=st.session_state.get("summary_input", st.session_state.edit_summary).strip(),
        example_prompts=[
            st.session_state.get(f"example_{i}", e).strip()
            for i, e in enumerate(st.session_state.edit_examples)
            if st.session_state.get(f"example_{i}", e).strip()
        ],
        prompt_code=st.session_state.get("code_input", st.session_state.edit_code).strip(),
    )


if tab == "Import":
    st.subheader("Prompt of the Day")

    source = st.radio("Source", list(SOURCE_KEYS), horizontal=True)
    source_type = SOURCE_KEYS[source]
    raw = ""
    url = ""
    identifier = "paste"
    if source == "Paste":
        raw = st.text_area("Paste the full prompt document", height=250, key="paste_input")
    elif source == "File":
        uploaded = st.file_uploader("Prompt document", type=["md", "txt", "pdf", "docx"])
        if uploaded is not None:
            identifier = uploaded.name
            try:
                raw = extract_file_text(uploaded.name, uploaded.getvalue())
            except ValueError as e:
                st.error(str(e))
    else:
        url = st.text_input("Prompt page URL", key="url_input").strip()
        identifier = url
        js_site = check_js_rendered(url) if is_url(url) else None
        if js_site:
            name, suggestion = js_site
            st.warning(f"{name} pages are rendered with JavaScript and can't be imported. {suggestion}")

    stored_templates = templates.list_templates(source_type=source_type)
    col_method, col_template = st.columns(2)
    method_choice = col_method.selectbox("Parsing method", [AUTO, *METHODS])
    template_labels = {NO_TEMPLATE: None, **{t.name: t.id for t in stored_templates}}
    template_choice = col_template.selectbox("Template", list(template_labels))

    if st.button("Parse", type="primary", disabled=not (raw.strip() or is_url(url))):
        log = []
        status_container = st.status("Parsing...", expanded=False)
        placeholder = status_container.empty()

        def on_status(msg):
            log.append(msg)
            try:
                placeholder.text("\n".join(log[-20:]))
            except Exception:
                pass

        try:
            if source_type == "url":
                on_status(f"[IMPORT] Fetching {url}...")
                raw = fetch_url_text(url)
            _, result = import_prompt(
                raw,
                source_type,
                identifier,
                force_method=None if method_choice == AUTO else method_choice,
                template_id=template_labels[template_choice],
                on_status=on_status,
            )
        except (OSError, ValueError) as e:
            st.error(f"Parsing failed: {e}")
        else:
            status_container.update(label="Parsed", state="complete")
            st.session_state.last_result = result
            st.session_state.status_log = log
            # An all-empty parse leaves the editor blank without an error
            _load_into_editor(result.fields)
            st.rerun()

    result = st.session_state.last_result
    if result is not None:
        found = ", ".join(result.fields_found) or "none"
        message = (
            f"Parsed via **{result.method}** -- {result.confidence:.0f}% confidence "
            f"(fields: {found})"
        )
        if result.error:
            st.warning(f"{message}\n\n{result.error}")
        elif result.success:
            st.success(message)
        if st.session_state.status_log:
            with st.expander("Parse log"):
                st.code("\n".join(st.session_state.status_log))

    st.divider()
    st.text_input("Title", value=st.session_state.edit_title, key="title_input")
    st.text_area("Summary", value=st.session_state.edit_summary, height=120, key="summary_input")
    st.write("**Example prompts**")
    for i, example in enumerate(st.session_state.edit_examples):
        st.text_input(
            f"Example {i + 1}", value=example, key=f"example_{i}", label_visibility="collapsed"
        )
    if st.button("Add example"):
        st.session_state.edit_examples = [
            st.session_state.get(f"example_{i}", e) for i, e in enumerate(st.session_state.edit_examples)
        ] + [""]
        st.rerun()
    st.text_area("Prompt code", value=st.session_state.edit_code, height=250, key="code_input")

    doc = _editor_document()
    with st.popover("Save to Library"):
        auto_id = slugify(doc.title) if doc.title else ""
        save_id = st.text_input("ID", value=auto_id, key="save_id")
        save_desc = st.text_input("Description", value="", key="save_desc")
        exists = save_id and prompt_exists(save_id.strip())
        if exists:
            st.warning(f"Prompt '{save_id}' already exists.")
            confirm = st.checkbox("Overwrite existing prompt", key="save_overwrite")
        else:
            confirm = True
        valid_save = bool(doc.title and save_id.strip() and confirm)
        if st.button("Save", disabled=not valid_save) and valid_save:
            save_prompt(doc, prompt_id=save_id.strip(), description=save_desc.strip())
            st.session_state._show_save_toast = True
            st.rerun()

elif tab == "Library":
    saved = list_prompts()
    if not saved:
        st.info("No saved prompts yet. Parse a document on the Import tab and save it.")
    else:
        with st.container(border=True):
            col_name, col_desc, col_load, col_del = st.columns([2, 4, 1, 1])
            col_name.write("**Name**")
            col_desc.write("**Description**")
            col_load.write("**Load**")
            col_del.write("**Delete**")
            st.divider()
            for i, p in enumerate(saved):
                col_name, col_desc, col_load, col_del = st.columns([2, 4, 1, 1])
                col_name.write(p["name"])
                col_desc.write(p["description"])
                if col_load.button("Load", key=f"load_{p['id']}"):
                    doc = load_prompt(p["id"])
                    if doc is not None:
                        _load_into_editor(doc)
                        st.session_state.last_result = None
                        st.session_state._switch_to_import = True
                        st.rerun()
                with col_del.popover("Delete"):
                    st.write(f"Delete **{p['name']}**?")
                    if st.button("Confirm", key=f"del_{p['id']}", type="primary"):
                        delete_prompt(p["id"])
                        st.session_state._show_delete_toast = True
                        st.rerun()
                if i < len(saved) - 1:
                    st.divider()

elif tab == "Templates":
    stored = templates.list_templates()
    if stored:
        for t in stored:
            with st.expander(f"{t.name}  [{t.source_type}]  /{t.source_pattern}/"):
                st.caption(f"{t.success_count} successful, {t.failure_count} failed uses")
                st.json({k: v.to_dict() for k, v in t.field_patterns.items()})
                if st.button("Delete", key=f"del_tmpl_{t.id}"):
                    templates.delete_template(t.id)
                    st.rerun()
    else:
        st.caption("No import templates yet.")

    st.subheader("New template")
    name = st.text_input("Name", key="tmpl_name")
    col_type, col_pattern = st.columns([1, 3])
    source_type = col_type.selectbox("Source type", templates.SOURCE_TYPES, key="tmpl_source_type")
    source_pattern = col_pattern.text_input("Source pattern (regex)", key="tmpl_source_pattern")
    field_patterns = {}
    for field_name in FIELD_NAMES:
        col_p, col_f, col_g = st.columns([4, 1, 1])
        pattern = col_p.text_input(f"{field_name} pattern", key=f"tmpl_{field_name}")
        flags = col_f.text_input("Flags", key=f"tmpl_{field_name}_flags")
        group = col_g.number_input("Group", min_value=0, value=1, key=f"tmpl_{field_name}_group")
        if pattern:
            field_patterns[field_name] = FieldPattern(pattern, flags, int(group))
    if st.button("Create Template", disabled=not (name.strip() and field_patterns)):
        templates.create_template(name.strip(), source_type, source_pattern, field_patterns)
        st.rerun()

elif tab == "History":
    entries = history.list_imports()
    if not entries:
        st.info("No imports yet. Parsed documents will appear here.")
    else:
        stats = history.import_stats()
        col_total, col_ok = st.columns(2)
        col_total.metric("Imports", stats["total_imports"])
        col_ok.metric("Successful", stats["successful_imports"])

        if st.button("Clear History"):
            history.clear_history()
            st.rerun()

        options = [
            f"{i + 1}. {e.get('source_identifier', '')} [{e['parsing_method']}]"
            f"{'' if e.get('success') else ' [partial]'}"
            for i, e in enumerate(entries)
        ]
        selected = st.selectbox("Past imports", options, index=0)
        entry = entries[int(selected.split(".")[0]) - 1]
        st.caption(f"{entry['created_at']} -- {entry.get('confidence', 0):.0f}% confidence")
        if entry.get("error"):
            st.warning(entry["error"])
        st.json(entry.get("parsed_fields") or {})

elif tab == "JSON":
    st.subheader("Extract JSON from model output")
    raw_json = st.text_area("Raw model output", height=250, key="json_input")
    if raw_json.strip():
        extracted = extract_strict_json(raw_json)
        st.code(extracted, language="json")
        try:
            st.json(parse_strict_json(raw_json))
        except JsonExtractionError as e:
            st.error(f"Failed to parse the extracted text as JSON. {e.cause}")

else:  # Status
    st.subheader("Configuration")
    with st.container(border=True):
        st.text(f"Ollama Model:        {config.OLLAMA_MODEL}")
        st.text(f"Min confidence:      {config.min_confidence()}%")
        st.text(f"AI content limit:    {config.ai_content_limit()} chars")

    st.subheader("Connection Health")
    if st.button("Test Connections", type="primary"):
        try:
            response = ollama.list()
            model_names = [m.model for m in response.models]
            if config.OLLAMA_MODEL in model_names:
                st.success(f"Ollama: connected -- model `{config.OLLAMA_MODEL}` available")
            else:
                # Try matching without tag (e.g. "mistral" matches "mistral:latest")
                base_matches = [n for n in model_names if n.split(":")[0] == config.OLLAMA_MODEL]
                if base_matches:
                    st.success(f"Ollama: connected -- model `{base_matches[0]}` available")
                else:
                    st.error(
                        f"Ollama: connected but model `{config.OLLAMA_MODEL}` not found. "
                        f"Available: {', '.join(model_names)}"
                    )
        except Exception as e:
            st.error(f"Ollama: unreachable -- {e}")

    with st.expander("Raw configuration"):
        st.code(json.dumps({
            "OLLAMA_MODEL": config.OLLAMA_MODEL,
            "PARSE_MIN_CONFIDENCE": config.PARSE_MIN_CONFIDENCE,
            "AI_CONTENT_LIMIT": config.AI_CONTENT_LIMIT,
        }, indent=2))
