"""Owner operations on medical documents.

Reads go through the caller's data source, so demo accounts see fixtures.
Writes go to the stores and are refused for read-only (demo) sources.
"""

from typing import List, Optional, Tuple

from ..models.document import MedicalDocument
from ..utils.clock import utcnow
from ..utils.exceptions import DocumentNotFound, ReadOnlyDataSource
from ..utils.logging import get_logger
from .data_sources import DataSource, DataSourceResolver
from .document_store import DocumentStore
from .file_storage import FileStorage, build_file_path

logger = get_logger(__name__, prefix="Documents")


class DocumentService:
    def __init__(
        self,
        documents: DocumentStore,
        files: FileStorage,
        data_sources: DataSourceResolver,
    ):
        self.documents = documents
        self.files = files
        self.data_sources = data_sources

    def source_for(self, user_id: str) -> DataSource:
        return self.data_sources.for_user(user_id)

    def _writable(self, user_id: str) -> None:
        if self.source_for(user_id).read_only:
            raise ReadOnlyDataSource("Demo accounts cannot modify documents")

    async def list_documents(self, user_id: str) -> List[MedicalDocument]:
        return await self.source_for(user_id).list_documents(user_id)

    async def get_document(self, user_id: str, document_id: str) -> MedicalDocument:
        """Get one of the caller's documents.

        Raises:
            DocumentNotFound: If it does not exist or belongs to someone else
        """
        document = await self.source_for(user_id).get_document(document_id)
        if document is None or document.user_id != user_id:
            raise DocumentNotFound(f"Document {document_id} not found")
        return document

    async def save_document(
        self,
        user_id: str,
        file_name: str,
        data: bytes,
        content_type: Optional[str],
        tags: List[str],
        summary: Optional[str] = None,
        file_content: Optional[str] = None,
    ) -> MedicalDocument:
        """Store the file and its metadata.

        The file is uploaded first; if the metadata insert fails the upload
        is removed again.

        Raises:
            ReadOnlyDataSource: For demo accounts
            StorageError: If the object store rejects the upload
        """
        self._writable(user_id)

        path = build_file_path(user_id, file_name)
        await self.files.upload(path, data, content_type)

        document = MedicalDocument(
            user_id=user_id,
            file_name=file_name,
            tags=tags,
            uploaded_at=utcnow(),
            summary=summary,
            file_content=file_content,
            file_path=path,
            file_size=len(data),
            file_type=content_type,
        )
        try:
            document.id = await self.documents.insert(document)
        except Exception:
            logger.error(f"Metadata insert failed for {path}, removing uploaded file")
            await self.files.delete(path)
            raise

        logger.info(f"Saved document {document.id} ({file_name}, {len(data)} bytes) for {user_id}")
        return document

    async def delete_document(self, user_id: str, document_id: str) -> None:
        """Delete a document and its stored file.

        Raises:
            ReadOnlyDataSource: For demo accounts
            DocumentNotFound: If the caller has no such document
        """
        self._writable(user_id)
        document = await self.get_document(user_id, document_id)

        if not await self.documents.delete(document_id, user_id):
            raise DocumentNotFound(f"Document {document_id} not found")

        if document.file_path:
            try:
                await self.files.delete(document.file_path)
            except Exception as e:
                logger.warning(f"Stored file {document.file_path} could not be removed: {e}")

        logger.info(f"Deleted document {document_id} for {user_id}")

    async def open_file(self, user_id: str, document_id: str) -> Tuple[MedicalDocument, bytes, Optional[str]]:
        """Original upload of one of the caller's documents.

        Raises:
            DocumentNotFound: If the document or its file is missing
        """
        document = await self.get_document(user_id, document_id)
        stored = await self.files.open(document.file_path) if document.file_path else None
        if stored is None:
            raise DocumentNotFound(f"No stored file for document {document_id}")
        data, content_type = stored
        return document, data, content_type or document.file_type
